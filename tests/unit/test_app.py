"""Tests for the application bootstrap (startup order, fatal errors, shutdown)."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kubeproblem.app import KubeProblemApp, _ComponentError
from kubeproblem.collector.source import SnapshotError
from kubeproblem.models.config import APIConfig, KubeProblemConfig, NotificationConfig, WatchConfig
from tests.factories import make_notifier


def _config(**notifications: str) -> KubeProblemConfig:
    return KubeProblemConfig(
        watch=WatchConfig(watch_nodes=True, namespaces=["default"], poll_interval_seconds=1),
        notifications=NotificationConfig(**notifications),
        api=APIConfig(enabled=False),
    )


def _source() -> MagicMock:
    source = MagicMock()
    source.metrics_api_available = False
    source.verify_access = AsyncMock()
    source.probe_metrics_api = AsyncMock(return_value=False)
    source.get_node_metrics = AsyncMock(return_value=({}, False))
    source.list_nodes = AsyncMock(return_value=[])
    source.list_pods = AsyncMock(return_value=[])
    source.close = AsyncMock()
    return source


def _notifier() -> MagicMock:
    notifier = make_notifier()
    notifier.verify = AsyncMock(return_value="hooks.example.com")
    notifier.stop = AsyncMock()
    return notifier


@contextmanager
def _patched(source: MagicMock, notifier: MagicMock | None = None) -> Iterator[None]:
    with ExitStack() as stack:
        stack.enter_context(patch("kubeproblem.collector.source.load_kube_config", AsyncMock()))
        stack.enter_context(patch("kubeproblem.collector.source.KubeSnapshotSource", MagicMock(return_value=source)))
        if notifier is not None:
            stack.enter_context(patch("kubeproblem.notifications.build_notifier", MagicMock(return_value=notifier)))
        yield


# =====================================================================
# Startup failures
# =====================================================================


class TestStartupFailures:
    async def test_unreadable_namespace_fails_source_component(self) -> None:
        source = _source()
        source.verify_access.side_effect = SnapshotError("Error retrieving namespace default: 403 Forbidden")
        app = KubeProblemApp(_config(webhook_url="https://hooks.example.com/x"))

        with _patched(source), pytest.raises(_ComponentError) as exc_info:
            await app.start()

        assert exc_info.value.component == "snapshot_source"
        assert isinstance(exc_info.value.cause, SnapshotError)
        await app.stop()
        source.close.assert_awaited_once()

    async def test_missing_destination_fails_notifier_component(self) -> None:
        source = _source()
        app = KubeProblemApp(_config())

        with _patched(source), pytest.raises(_ComponentError) as exc_info:
            await app.start()

        assert exc_info.value.component == "notifier"
        assert "No notification destination" in str(exc_info.value)
        await app.stop()

    async def test_invalid_environment_fails_config_component(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEPROBLEM_LOG_LEVEL", "chatty")
        app = KubeProblemApp()

        with pytest.raises(_ComponentError) as exc_info:
            await app.start()

        assert exc_info.value.component == "config"


# =====================================================================
# Running and shutdown
# =====================================================================


class TestRunAndStop:
    async def test_cycle_error_surfaces_from_run(self) -> None:
        source = _source()
        source.list_pods.side_effect = SnapshotError("Error listing pods in namespace default: 500")
        notifier = _notifier()
        app = KubeProblemApp(_config(webhook_url="https://hooks.example.com/x"))

        with _patched(source, notifier):
            await app.start()
            with pytest.raises(SnapshotError):
                await app.run()
            await app.stop()

        source.probe_metrics_api.assert_awaited_once()
        source.verify_access.assert_awaited_once_with(True, ["default"])
        notifier.verify.assert_awaited_once()
        notifier.stop.assert_awaited_once()
        source.close.assert_awaited_once()

    async def test_stop_cancels_running_controller(self) -> None:
        source = _source()
        notifier = _notifier()
        app = KubeProblemApp(_config(webhook_url="https://hooks.example.com/x"))

        with _patched(source, notifier):
            await app.start()
            await app.stop()
            await app.run()

        notifier.stop.assert_awaited_once()
        source.close.assert_awaited_once()

    async def test_stop_is_idempotent(self) -> None:
        source = _source()
        notifier = _notifier()
        app = KubeProblemApp(_config(webhook_url="https://hooks.example.com/x"))

        with _patched(source, notifier):
            await app.start()
            await app.stop()
            await app.stop()

        notifier.stop.assert_awaited_once()
