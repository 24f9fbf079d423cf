"""Notification delivery for kube-problem.

Exports:
    Notifier          -- Abstract base for all destinations (retrying send).
    NotificationError -- Raised when a message cannot be delivered.
    SlackNotifier     -- Slack Web API destination (bot token + channel).
    WebhookNotifier   -- Generic JSON POST destination.
    format_report, format_resolve -- Message templates.
    build_notifier    -- Factory used by the application bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kubeproblem.notifications.base import NotificationError, Notifier, RetryableNotificationError
from kubeproblem.notifications.messages import format_report, format_resolve, pick_greeting
from kubeproblem.notifications.slack import SlackNotifier
from kubeproblem.notifications.webhook import WebhookNotifier

if TYPE_CHECKING:
    from kubeproblem.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "NotificationError",
    "Notifier",
    "RetryableNotificationError",
    "SlackNotifier",
    "WebhookNotifier",
    "build_notifier",
    "format_report",
    "format_resolve",
    "pick_greeting",
]


def build_notifier(config: NotificationConfig) -> Notifier:
    """Build the single configured notifier.

    Slack is used when both token and channel are set, otherwise the webhook
    URL. Exactly one destination receives every message.

    Raises:
        ValueError: if no destination is configured or it is malformed.
    """
    options = {"timeout": float(config.timeout_seconds), "max_retries": config.max_retries}

    if config.slack_token or config.slack_channel:
        if not (config.slack_token and config.slack_channel):
            raise ValueError("Both KUBEPROBLEM_SLACK_TOKEN and KUBEPROBLEM_SLACK_CHANNEL must be set")
        if config.webhook_url:
            _log.warning("webhook_ignored", reason="slack destination takes precedence")
        _log.info("notifier_selected", destination="slack", channel=config.slack_channel)
        return SlackNotifier(token=config.slack_token, channel=config.slack_channel, **options)

    if config.webhook_url:
        _log.info("notifier_selected", destination="webhook")
        return WebhookNotifier(url=config.webhook_url, **options)

    raise ValueError(
        "No notification destination configured. "
        "Set KUBEPROBLEM_SLACK_TOKEN and KUBEPROBLEM_SLACK_CHANNEL, or KUBEPROBLEM_WEBHOOK_URL."
    )
