"""Generic JSON webhook notifier.

POSTs ``{"text": message}`` to a configured URL, which is the payload
accepted by Slack incoming webhooks and most chat tools that mimic them.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from kubeproblem.notifications.base import Notifier, raise_for_http_status


class WebhookNotifier(Notifier):
    """Delivers messages by POSTing a JSON payload to a URL.

    Args:
        url:     Full endpoint URL.
        headers: Optional extra headers (e.g. Authorization).
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, **kwargs: Any) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Webhook url must be an http(s) URL, got: {url!r}")
        super().__init__(**kwargs)
        self._url = url
        self._headers = headers or {}

    @property
    def name(self) -> str:
        return "webhook"

    async def verify(self) -> str:
        # Posting a probe would spam the channel; the URL was validated on construction.
        return urlparse(self._url).netloc

    async def _deliver(self, message: str) -> None:
        response = await self._client.post(
            self._url,
            json={"text": message},
            headers={"Content-Type": "application/json", **self._headers},
        )
        raise_for_http_status(response)
