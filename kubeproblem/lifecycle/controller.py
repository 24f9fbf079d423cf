"""Lifecycle controller: the reconciliation loop.

One cycle classifies every watched node, then every pod of every watched
namespace in configuration order, and feeds each verdict into the
ProblemRegistry. Messages the registry declares due are sent synchronously,
so a slow or retrying notifier delays the rest of the cycle. Cycles never
overlap and the registry is only written from here.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable, Collection, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from kubeproblem.classifiers import classify_node, classify_pod
from kubeproblem.collector.source import SnapshotSource
from kubeproblem.lifecycle.registry import ProblemRegistry
from kubeproblem.models.problems import DetectedProblem, ProblemKind, ProblemRecord, ResourceRef
from kubeproblem.notifications.base import Notifier
from kubeproblem.notifications.messages import format_report, format_resolve
from kubeproblem.observability.logging import bind_cycle, get_logger
from kubeproblem.observability.metrics import (
    cycle_duration_seconds,
    cycles_total,
    node_metrics_available,
    notifications_total,
    problems_detected_total,
)

_log = get_logger("lifecycle.controller")

DEFAULT_INTERVAL_SECONDS = 10.0


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CycleResult:
    """Summary of one reconciliation cycle."""

    nodes_checked: int = 0
    pods_checked: int = 0
    problems_detected: int = 0
    reports_sent: int = 0
    resolves_sent: int = 0
    stale_evicted: int = 0


class LifecycleController:
    """Drives poll cycles and turns registry decisions into notifications.

    Args:
        source:    Where node/pod snapshots and node metrics come from.
        notifier:  Destination for report and resolve messages.
        registry:  Problem state; a fresh registry is created if omitted.
        interval:  Seconds between cycle starts.
        clock:     Wall-clock source (UTC) used for records and messages.
        monotonic: Monotonic clock used to measure cycle duration.
        sleep:     Coroutine used for the inter-cycle wait.
        rng:       Random source for message greetings.
    """

    def __init__(
        self,
        source: SnapshotSource,
        notifier: Notifier,
        registry: ProblemRegistry | None = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._source = source
        self._notifier = notifier
        self.registry = registry if registry is not None else ProblemRegistry()
        self.interval = interval
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.last_cycle_at: datetime | None = None
        self.cycles = 0

    async def start(self, watch_nodes: bool, watch_namespaces: Sequence[str]) -> None:
        """Run cycles forever. Returns only by raising the first fatal error.

        Cycle start times are aligned to ``interval``: the wait after each
        cycle is the remainder of the interval, never negative.

        Raises:
            SnapshotError:     when nodes or pods cannot be listed.
            NotificationError: when a message cannot be delivered.
        """
        _log.info(
            "controller_starting",
            interval_seconds=self.interval,
            watch_nodes=watch_nodes,
            namespaces=list(watch_namespaces),
        )
        while True:
            started = self._monotonic()
            await self.run_cycle(watch_nodes, watch_namespaces)
            wait = self.interval - (self._monotonic() - started)
            if wait > 0:
                await self._sleep(wait)

    async def run_cycle(self, watch_nodes: bool, watch_namespaces: Sequence[str]) -> CycleResult:
        """Classify every watched resource once and settle the registry."""
        started = self._monotonic()
        self.cycles += 1
        bind_cycle(self.cycles)
        result = CycleResult()

        if watch_nodes:
            await self._watch_nodes(result)
        for namespace in watch_namespaces:
            await self._watch_namespace(namespace, result)

        result.stale_evicted = len(self.registry.sweep(self._clock()))

        duration = self._monotonic() - started
        cycles_total.inc()
        cycle_duration_seconds.observe(duration)
        self.last_cycle_at = self._clock()
        _log.debug(
            "cycle_completed",
            duration_seconds=round(duration, 3),
            tracked=len(self.registry),
            **vars(result),
        )
        return result

    async def _watch_nodes(self, result: CycleResult) -> None:
        samples, metrics_available = await self._source.get_node_metrics()
        node_metrics_available.set(1 if metrics_available else 0)
        # Without metrics the pressure checks did not run, so they cannot count as clean.
        held: tuple[ProblemKind, ...] = () if metrics_available else (ProblemKind.NODE_RESOURCE_PRESSURE,)
        nodes = await self._source.list_nodes()
        now = self._clock()
        for node in nodes:
            problem = classify_node(node, samples.get(node.name), metrics_available)
            await self._observe(node.ref, problem, now, result, held)
            result.nodes_checked += 1

    async def _watch_namespace(self, namespace: str, result: CycleResult) -> None:
        pods = await self._source.list_pods(namespace)
        now = self._clock()
        for pod in pods:
            await self._observe(pod.ref, classify_pod(pod, now), now, result)
            result.pods_checked += 1

    async def _observe(
        self,
        ref: ResourceRef,
        problem: DetectedProblem | None,
        now: datetime,
        result: CycleResult,
        held: Collection[ProblemKind] = (),
    ) -> None:
        if problem is not None:
            result.problems_detected += 1
            problems_detected_total.labels(problem_kind=problem.kind.value).inc()
            record = self.registry.report(problem, now)
            if record is not None:
                await self._send_report(record, now)
                self.registry.mark_reported(record)
                result.reports_sent += 1
            return

        for record in self.registry.resolve(ref, now, held):
            await self._send_resolve(record, now)
            result.resolves_sent += 1

    async def _send_report(self, record: ProblemRecord, now: datetime) -> None:
        message = format_report(record, now.astimezone(), self._rng)
        _log.info(
            "problem_reported",
            resource=str(record.ref),
            problem_kind=record.kind.value,
            occurrences=record.occurrences,
            message=record.message,
        )
        await self._send("report", message)

    async def _send_resolve(self, record: ProblemRecord, now: datetime) -> None:
        message = format_resolve(record, now.astimezone(), self._rng)
        _log.info(
            "problem_resolved",
            resource=str(record.ref),
            problem_kind=record.kind.value,
            resolutions=record.resolutions,
        )
        await self._send("resolve", message)

    async def _send(self, message_type: str, message: str) -> None:
        try:
            await self._notifier.send(message)
        except Exception:
            notifications_total.labels(type=message_type, success="false").inc()
            raise
        notifications_total.labels(type=message_type, success="true").inc()

