"""Tests for logging setup and cycle context binding."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from kubeproblem.observability.logging import bind_cycle, setup_logging


@pytest.fixture(autouse=True)
def _clear_context() -> Iterator[None]:
    yield
    structlog.contextvars.clear_contextvars()


class TestLogging:
    def test_bind_cycle_sets_context(self) -> None:
        bind_cycle(3)
        assert structlog.contextvars.get_contextvars() == {"cycle": 3}
        bind_cycle(4)
        assert structlog.contextvars.get_contextvars() == {"cycle": 4}

    def test_third_party_loggers_held_at_warning(self) -> None:
        setup_logging("debug")
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging("error")
        assert logging.getLogger("kubernetes_asyncio").level == logging.ERROR
        setup_logging("info")
