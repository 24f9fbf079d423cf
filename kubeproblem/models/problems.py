"""Problem kinds, resource identities and tracked problem records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class ResourceKind(StrEnum):
    """Kind of cluster resource a problem is attached to."""

    NODE = "Node"
    POD = "Pod"


@dataclass(frozen=True)
class ProblemPolicy:
    """Debounce policy for a problem kind.

    report_threshold:  consecutive detections before the first report is sent.
    resolve_threshold: consecutive clean cycles before the record is dropped
                       and, if it was reported, a resolve message is sent.
    """

    report_threshold: int
    resolve_threshold: int


class ProblemKind(StrEnum):
    """Closed set of problems the classifiers can detect."""

    NODE_CONDITION = "NodeCondition"
    NODE_RESOURCE_PRESSURE = "NodeResourcePressure"
    POD_CRITICAL_STATUS = "PodCriticalStatus"
    POD_PENDING = "PodPending"
    POD_RESTART = "PodRestart"

    @property
    def policy(self) -> ProblemPolicy:
        return _POLICIES[self]


_POLICIES: dict[ProblemKind, ProblemPolicy] = {
    ProblemKind.NODE_CONDITION: ProblemPolicy(report_threshold=1, resolve_threshold=1),
    ProblemKind.NODE_RESOURCE_PRESSURE: ProblemPolicy(report_threshold=10, resolve_threshold=5),
    ProblemKind.POD_CRITICAL_STATUS: ProblemPolicy(report_threshold=1, resolve_threshold=10),
    ProblemKind.POD_PENDING: ProblemPolicy(report_threshold=30, resolve_threshold=10),
    # Restart detection is edge-triggered: the first clean cycle resolves it.
    ProblemKind.POD_RESTART: ProblemPolicy(report_threshold=1, resolve_threshold=1),
}


@dataclass(frozen=True)
class ResourceRef:
    """Identity of a watched resource. Nodes have an empty namespace."""

    kind: ResourceKind
    name: str
    namespace: str = ""

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


ProblemKey = tuple[str, str, str, str]


@dataclass(frozen=True)
class DetectedProblem:
    """A single classifier verdict for one resource in one cycle."""

    ref: ResourceRef
    kind: ProblemKind
    message: str

    @property
    def key(self) -> ProblemKey:
        return (self.ref.kind.value, self.ref.namespace, self.ref.name, self.kind.value)


@dataclass
class ProblemRecord:
    """A problem tracked across cycles. Owned and mutated by the ProblemRegistry only."""

    ref: ResourceRef
    kind: ProblemKind
    message: str
    first_observed: datetime
    last_observed: datetime
    occurrences: int = 0
    resolutions: int = 0
    reported: bool = False

    @property
    def key(self) -> ProblemKey:
        return (self.ref.kind.value, self.ref.namespace, self.ref.name, self.kind.value)

    @property
    def policy(self) -> ProblemPolicy:
        return self.kind.policy
