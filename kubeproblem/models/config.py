"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class WatchConfig:
    """What to watch and how often."""

    watch_nodes: bool = True
    namespaces: list[str] = field(default_factory=lambda: ["default"])
    poll_interval_seconds: int = 10


@dataclass
class NotificationConfig:
    """Notification destination. Slack wins when both are configured."""

    slack_token: str = ""
    slack_channel: str = ""
    webhook_url: str = ""
    timeout_seconds: int = 10
    max_retries: int = 5


@dataclass
class APIConfig:
    """Status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeProblemConfig:
    """Top-level kube-problem configuration."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
