"""Application bootstrap for kube-problem.

Startup order: config → logging → K8s client → snapshot source (access
check, metrics probe) → notifier (destination check) → controller → REST.

Any startup failure is fatal. Once running, the controller task is the
process: when it raises (listing or notification failure) the app logs the
error, shuts everything down and exits non-zero so the host restarts it.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubeproblem.collector.source import SnapshotError
from kubeproblem.config import load_config
from kubeproblem.models.config import KubeProblemConfig
from kubeproblem.notifications.base import NotificationError
from kubeproblem.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from kubeproblem.collector.source import KubeSnapshotSource
    from kubeproblem.lifecycle.controller import LifecycleController
    from kubeproblem.notifications.base import Notifier

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeProblemApp:
    """Application root. Owns every component and coordinates their lifecycle.

    Args:
        config: Configuration to use; loaded from the environment if omitted.
    """

    def __init__(self, config: KubeProblemConfig | None = None) -> None:
        self.config = config
        self._source: KubeSnapshotSource | None = None
        self._notifier: Notifier | None = None
        self._controller: LifecycleController | None = None
        self._rest_server: object | None = None

        self._controller_task: asyncio.Task[None] | None = None
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            try:
                self.config = load_config()
            except ValueError as exc:
                raise _ComponentError("config", exc) from exc

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kube-problem starting", version=_version())

        await self._start_source()
        await self._start_notifier()
        self._start_controller()
        await self._start_rest()

        self._running = True
        self._log.info(
            "kube-problem started",
            watch_nodes=self.config.watch.watch_nodes,
            namespaces=self.config.watch.namespaces,
        )

    async def _start_source(self) -> None:
        """Connect to the cluster, check access to every watch target, probe metrics."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting snapshot source")
        try:
            from kubeproblem.collector.source import KubeSnapshotSource, load_kube_config

            await load_kube_config()
            source = KubeSnapshotSource()
            self._source = source
            await source.verify_access(self.config.watch.watch_nodes, self.config.watch.namespaces)
            await source.probe_metrics_api()
            self._log.info("snapshot source started", metrics_api=source.metrics_api_available)
        except Exception as exc:
            raise _ComponentError("snapshot_source", exc) from exc

    async def _start_notifier(self) -> None:
        """Build the notifier and validate its destination."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting notifier")
        try:
            from kubeproblem.notifications import build_notifier

            notifier = build_notifier(self.config.notifications)
            self._notifier = notifier
            destination = await notifier.verify()
            self._log.info("notifier started", notifier=notifier.name, destination=destination)
        except (ValueError, NotificationError) as exc:
            raise _ComponentError("notifier", exc) from exc

    def _start_controller(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._source is not None
        assert self._notifier is not None
        from kubeproblem.lifecycle.controller import LifecycleController

        watch = self.config.watch
        controller = LifecycleController(
            source=self._source,
            notifier=self._notifier,
            interval=float(watch.poll_interval_seconds),
        )
        self._controller = controller
        self._controller_task = asyncio.create_task(
            controller.start(watch.watch_nodes, watch.namespaces),
            name="lifecycle-controller",
        )

    async def _start_rest(self) -> None:
        """Start the uvicorn status server, unless disabled."""
        assert self._log is not None
        assert self.config is not None
        assert self._controller is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (api.enabled=false)")
            return
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from kubeproblem.api import create_app

            fastapi_app = create_app(registry=self._controller.registry, controller=self._controller)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Block until the controller stops.

        Raises:
            SnapshotError / NotificationError: the controller's fatal error.
        """
        assert self._controller_task is not None
        try:
            await self._controller_task
        except asyncio.CancelledError:
            if self._running:
                raise

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order. Safe to call twice."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kube-problem shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        tasks = list(self._background_tasks)
        if self._controller_task is not None:
            tasks.append(self._controller_task)
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.wait(tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
        self._background_tasks.clear()

        await self._close("notifier", self._notifier.stop() if self._notifier else None)
        await self._close("snapshot_source", self._source.close() if self._source else None)
        self._notifier = None
        self._source = None

        log.info("kube-problem stopped")

    async def _close(self, name: str, closing: object) -> None:
        if closing is None:
            return
        log = self._log or get_logger("app")
        try:
            await asyncio.wait_for(closing, timeout=_SHUTDOWN_GRACE_SECONDS)  # type: ignore[arg-type]
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _version() -> str:
    from kubeproblem import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeProblemConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown or a fatal error."""
    app = KubeProblemApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.run()
    except _ComponentError as exc:
        get_logger("app").critical("fatal startup error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    except (SnapshotError, NotificationError) as exc:
        get_logger("app").critical("fatal cycle error", error=str(exc), error_type=type(exc).__name__)
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
