"""Structured logging for kube-problem.

The daemon writes one JSON object per line to stderr. ``scan`` uses the
console renderer instead, so its warnings stay readable next to the problem
table on stdout. Each reconciliation cycle binds its sequence number via
contextvars, so every event of a cycle carries ``cycle=<n>``.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that log through the stdlib at INFO and would interleave plain text.
_THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "uvicorn", "uvicorn.error", "kubernetes_asyncio")


def setup_logging(level: str = "info", console: bool = False) -> None:
    """Configure structlog for kube-problem.

    Args:
        level:   Minimum level (debug, info, warning, error).
        console: Render human-readable lines instead of JSON.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer: structlog.typing.Processor = (
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        if console
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def bind_cycle(cycle: int) -> None:
    """Tag every subsequent event in this context with the cycle number."""
    structlog.contextvars.bind_contextvars(cycle=cycle)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
