"""Notifier contract shared by all destinations.

A notifier delivers one plain-text message to one destination. Transient
failures are retried with exponential backoff inside ``send``; anything the
notifier cannot deliver surfaces as NotificationError, which the
reconciliation loop treats as fatal.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

import httpx

from kubeproblem.observability.logging import get_logger

_log = get_logger("notifications")

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_MAX_BACKOFF_SECONDS = 30.0


class NotificationError(Exception):
    """Raised when a message could not be delivered."""


class RetryableNotificationError(NotificationError):
    """A delivery failure worth another attempt.

    Args:
        retry_after: Server-requested delay in seconds, if any.
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class Notifier(ABC):
    """Abstract base class for notification destinations.

    Args:
        timeout:     HTTP request timeout in seconds.
        max_retries: Retries after the first failed attempt.
        transport:   Optional httpx transport (tests use httpx.MockTransport).
        sleep:       Coroutine used for backoff waits.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_retries: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._max_retries = max_retries
        self._sleep = sleep
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    @abstractmethod
    def name(self) -> str:
        """Destination identifier used in logs."""

    @abstractmethod
    async def verify(self) -> str:
        """Check that the destination is usable and return a display name.

        Raises:
            NotificationError: if the destination cannot be validated.
        """

    @abstractmethod
    async def _deliver(self, message: str) -> None:
        """Make a single delivery attempt.

        Raises:
            RetryableNotificationError: for failures worth retrying.
            NotificationError:          for permanent failures.
        """

    async def send(self, message: str) -> None:
        """Deliver *message*, retrying transient failures.

        Raises:
            NotificationError: on a permanent failure or once retries are exhausted.
        """
        attempt = 0
        while True:
            try:
                await self._deliver_guarded(message)
                return
            except RetryableNotificationError as exc:
                if attempt >= self._max_retries:
                    raise NotificationError(
                        f"{self.name}: giving up after {attempt + 1} attempts: {exc}"
                    ) from exc
                delay = exc.retry_after if exc.retry_after is not None else min(2.0**attempt, _MAX_BACKOFF_SECONDS)
                _log.warning(
                    "notification_retry",
                    destination=self.name,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                    error=str(exc),
                )
                attempt += 1
                await self._sleep(delay)

    async def _deliver_guarded(self, message: str) -> None:
        try:
            await self._deliver(message)
        except httpx.TransportError as exc:
            raise RetryableNotificationError(f"transport error: {exc!r}") from exc

    async def stop(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()


def raise_for_http_status(response: httpx.Response) -> None:
    """Translate a non-2xx response into the matching NotificationError."""
    if response.is_success:
        return
    detail = f"HTTP {response.status_code}: {response.text[:200]}"
    if response.status_code in _RETRYABLE_STATUS:
        raise RetryableNotificationError(detail, retry_after=_retry_after(response))
    raise NotificationError(detail)


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return min(float(value), _MAX_BACKOFF_SECONDS)
    except ValueError:
        return None
