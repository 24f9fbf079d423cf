"""Slack notifier using the Slack Web API.

Posts plain-text messages with ``chat.postMessage`` and validates the
configured channel with ``conversations.info``. The bot token needs the
``chat:write`` and ``channels:read`` scopes.
"""

from __future__ import annotations

from typing import Any

import httpx

from kubeproblem.notifications.base import (
    NotificationError,
    Notifier,
    RetryableNotificationError,
    raise_for_http_status,
)

SLACK_API_URL = "https://slack.com/api"

# Slack reports these with HTTP 200 and ok=false; they are worth retrying.
_RETRYABLE_ERRORS = frozenset({"ratelimited", "request_timeout", "service_unavailable", "internal_error", "fatal_error"})


class SlackNotifier(Notifier):
    """Delivers messages to one Slack channel.

    Args:
        token:   Bot token (``xoxb-...``).
        channel: Channel ID the bot posts to.
        api_url: Base URL of the Web API.
    """

    def __init__(
        self,
        token: str,
        channel: str,
        api_url: str = SLACK_API_URL,
        **kwargs: Any,
    ) -> None:
        if not token:
            raise ValueError("Slack token must not be empty")
        if not channel:
            raise ValueError("Slack channel must not be empty")
        super().__init__(**kwargs)
        self._token = token
        self._channel = channel
        self._api_url = api_url.rstrip("/")

    @property
    def name(self) -> str:
        return "slack"

    async def verify(self) -> str:
        try:
            response = await self._client.get(
                f"{self._api_url}/conversations.info",
                params={"channel": self._channel},
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"slack: cannot reach API: {exc!r}") from exc
        raise_for_http_status(response)
        body = _json(response)
        if not body.get("ok"):
            raise NotificationError(f"slack: cannot read channel {self._channel}: {body.get('error', 'unknown_error')}")
        return str(body.get("channel", {}).get("name") or self._channel)

    async def _deliver(self, message: str) -> None:
        response = await self._client.post(
            f"{self._api_url}/chat.postMessage",
            json={"channel": self._channel, "text": message},
            headers=self._headers(),
        )
        raise_for_http_status(response)
        body = _json(response)
        if body.get("ok"):
            return
        error = str(body.get("error", "unknown_error"))
        if error in _RETRYABLE_ERRORS:
            raise RetryableNotificationError(f"slack error: {error}")
        raise NotificationError(f"slack error: {error}")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json; charset=utf-8",
        }


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise NotificationError(f"slack: response is not JSON: {response.text[:200]}") from exc
    if not isinstance(body, dict):
        raise NotificationError("slack: unexpected response body")
    return body
