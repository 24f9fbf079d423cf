"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubeproblem.models.config import (
    APIConfig,
    KubeProblemConfig,
    LogConfig,
    NotificationConfig,
    WatchConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEPROBLEM_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError:
        raise ValueError(f"KUBEPROBLEM_{key} must be an integer, got: {raw!r}") from None
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: str = "") -> list[str]:
    """Split a comma-separated variable, dropping blanks and repeats but keeping order."""
    items: list[str] = []
    for part in _env(key, default).split(","):
        part = part.strip()
        if part and part not in items:
            items.append(part)
    return items


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> KubeProblemConfig:
    """Load configuration from KUBEPROBLEM_* environment variables."""
    return KubeProblemConfig(
        watch=WatchConfig(
            watch_nodes=_env_bool("WATCH_NODES", True),
            namespaces=_env_list("WATCH_NAMESPACES", "default"),
            poll_interval_seconds=_env_int("POLL_INTERVAL", 10, min_val=1, max_val=3600),
        ),
        notifications=NotificationConfig(
            slack_token=_env("SLACK_TOKEN", ""),
            slack_channel=_env("SLACK_CHANNEL", ""),
            webhook_url=_env("WEBHOOK_URL", ""),
            timeout_seconds=_env_int("NOTIFY_TIMEOUT", 10, min_val=1, max_val=120),
            max_retries=_env_int("NOTIFY_MAX_RETRIES", 5, min_val=0, max_val=20),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
