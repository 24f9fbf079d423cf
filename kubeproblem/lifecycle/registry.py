"""Problem registry: the only mutable state of kube-problem.

The registry owns every ProblemRecord and implements the report/resolve
debounce protocol. It decides *whether* a message is due; sending it is the
controller's job. Records are keyed by ``(resource kind, namespace, name,
problem kind)`` so one resource can hold several records of different kinds.

The registry is written by the reconciliation loop only. Other components
(the status API) may read it from the same event loop without locking.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime, timedelta

from kubeproblem.models.problems import (
    DetectedProblem,
    ProblemKey,
    ProblemKind,
    ProblemRecord,
    ResourceRef,
)
from kubeproblem.observability.logging import get_logger
from kubeproblem.observability.metrics import stale_evictions_total, tracked_problems

_log = get_logger("lifecycle.registry")

STALE_AFTER = timedelta(minutes=30)


class ProblemRegistry:
    """Keyed store of tracked problems with debounce bookkeeping."""

    def __init__(self, stale_after: timedelta = STALE_AFTER) -> None:
        self._stale_after = stale_after
        self._records: dict[ProblemKey, ProblemRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def get(self, key: ProblemKey) -> ProblemRecord | None:
        return self._records.get(key)

    def records(self) -> list[ProblemRecord]:
        """Return the tracked records, oldest first."""
        return sorted(self._records.values(), key=lambda r: r.first_observed)

    def records_for(self, ref: ResourceRef) -> list[ProblemRecord]:
        return [r for r in self._records.values() if r.ref == ref]

    # ------------------------------------------------------------------
    # Report / resolve protocol
    # ------------------------------------------------------------------

    def report(self, problem: DetectedProblem, now: datetime) -> ProblemRecord | None:
        """Record a detection of *problem*.

        Returns the record when a report message is due now: the occurrence
        counter just reached the kind's report threshold and nothing was
        reported yet. Call ``mark_reported`` once the message went out.
        """
        record = self._records.get(problem.key)
        if record is None:
            record = ProblemRecord(
                ref=problem.ref,
                kind=problem.kind,
                message=problem.message,
                first_observed=now,
                last_observed=now,
            )
            self._records[problem.key] = record
            tracked_problems.set(len(self._records))

        record.occurrences += 1
        record.resolutions = 0
        record.message = problem.message
        record.last_observed = now

        if record.reported:
            return None
        if record.occurrences >= record.policy.report_threshold:
            return record

        _log.info(
            "problem_pending",
            resource=str(record.ref),
            problem_kind=record.kind.value,
            occurrences=record.occurrences,
            report_threshold=record.policy.report_threshold,
            message=record.message,
        )
        return None

    def mark_reported(self, record: ProblemRecord) -> None:
        live = self._records.get(record.key)
        if live is not None:
            live.reported = True

    def resolve(
        self,
        ref: ResourceRef,
        now: datetime,
        held: Collection[ProblemKind] = (),
    ) -> list[ProblemRecord]:
        """Record a clean cycle for every live record of *ref*.

        Every record of *ref* counts as observed at *now*. Records whose kind
        is in *held* were not checked this cycle and keep their resolution
        counter. The others are removed once the counter reaches their kind's
        resolve threshold. Returns the removed records that had been reported,
        i.e. those that need a resolve message.
        """
        due: list[ProblemRecord] = []
        for record in self.records_for(ref):
            record.last_observed = now
            if record.kind in held:
                continue
            record.resolutions += 1
            if record.reported:
                _log.info(
                    "problem_recovering",
                    resource=str(record.ref),
                    problem_kind=record.kind.value,
                    resolutions=record.resolutions,
                    resolve_threshold=record.policy.resolve_threshold,
                )
            if record.resolutions < record.policy.resolve_threshold:
                continue
            del self._records[record.key]
            if record.reported:
                due.append(record)
            else:
                _log.debug("problem_dropped_unreported", resource=str(record.ref), problem_kind=record.kind.value)
        tracked_problems.set(len(self._records))
        return due

    def sweep(self, now: datetime) -> list[ProblemRecord]:
        """Drop records not observed within the staleness window, silently."""
        stale = [r for r in self._records.values() if now - r.last_observed > self._stale_after]
        for record in stale:
            del self._records[record.key]
            stale_evictions_total.inc()
            _log.info(
                "problem_evicted_stale",
                resource=str(record.ref),
                problem_kind=record.kind.value,
                reported=record.reported,
                last_observed=record.last_observed.isoformat(),
            )
        tracked_problems.set(len(self._records))
        return stale
