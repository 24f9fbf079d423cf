"""Immutable node and pod snapshots parsed from raw Kubernetes JSON.

The collector converts API objects into plain camelCase dicts (the wire
format) and every classifier works on the snapshots built here, so the
classification logic never touches the Kubernetes client models.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from kubeproblem.models.problems import ResourceKind, ResourceRef

_QUANTITY_RE = re.compile(r"^([+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?)([a-zA-Z]*)$")

_QUANTITY_SUFFIXES: dict[str, float] = {
    "": 1.0,
    "n": 1e-9,
    "u": 1e-6,
    "m": 1e-3,
    "k": 1e3,
    "M": 1e6,
    "G": 1e9,
    "T": 1e12,
    "P": 1e15,
    "E": 1e18,
    "Ki": 1024.0,
    "Mi": 1024.0**2,
    "Gi": 1024.0**3,
    "Ti": 1024.0**4,
    "Pi": 1024.0**5,
    "Ei": 1024.0**6,
}


def parse_quantity(value: object) -> float:
    """Parse a Kubernetes resource quantity ("250m", "1Gi", "12e3") into a float.

    CPU quantities come out in cores, memory quantities in bytes.

    Raises:
        ValueError: if *value* is not a valid quantity.
    """
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    match = _QUANTITY_RE.match(text)
    if match is None or match.group(2) not in _QUANTITY_SUFFIXES:
        raise ValueError(f"Invalid resource quantity: {value!r}")
    return float(match.group(1)) * _QUANTITY_SUFFIXES[match.group(2)]


def _parse_ts(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _quantity_or_none(resources: dict[str, Any], name: str) -> float | None:
    raw = resources.get(name)
    if raw is None:
        return None
    return parse_quantity(raw)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NodeCondition:
    """One entry of ``status.conditions`` on a Node."""

    type: str
    status: str
    message: str = ""
    reason: str = ""


@dataclass(frozen=True)
class NodeSnapshot:
    """Node state relevant to health classification."""

    name: str
    conditions: tuple[NodeCondition, ...] = ()
    cpu_allocatable: float | None = None
    memory_allocatable: float | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> NodeSnapshot:
        metadata = raw.get("metadata") or {}
        status = raw.get("status") or {}
        # Fall back to capacity when the kubelet does not publish allocatable.
        resources = status.get("allocatable") or status.get("capacity") or {}
        conditions = tuple(
            NodeCondition(
                type=str(cond.get("type", "")),
                status=str(cond.get("status", "")),
                message=str(cond.get("message") or ""),
                reason=str(cond.get("reason") or ""),
            )
            for cond in status.get("conditions") or []
        )
        return cls(
            name=str(metadata.get("name", "")),
            conditions=conditions,
            cpu_allocatable=_quantity_or_none(resources, "cpu"),
            memory_allocatable=_quantity_or_none(resources, "memory"),
        )

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(kind=ResourceKind.NODE, name=self.name)


@dataclass(frozen=True)
class UsageSample:
    """Point-in-time resource usage of a node from the metrics API."""

    cpu: float  # cores
    memory: float  # bytes

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> UsageSample:
        usage = raw.get("usage") or {}
        return cls(
            cpu=parse_quantity(usage.get("cpu", 0)),
            memory=parse_quantity(usage.get("memory", 0)),
        )


# ---------------------------------------------------------------------------
# Pods
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TerminatedState:
    exit_code: int = 0
    signal: int = 0
    reason: str = ""
    finished_at: datetime | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> TerminatedState | None:
        if raw is None:
            return None
        return cls(
            exit_code=int(raw.get("exitCode") or 0),
            signal=int(raw.get("signal") or 0),
            reason=str(raw.get("reason") or ""),
            finished_at=_parse_ts(raw.get("finishedAt")),
        )


@dataclass(frozen=True)
class ContainerState:
    """Exactly one of waiting/running/terminated is normally set."""

    waiting_reason: str | None = None
    running: bool = False
    terminated: TerminatedState | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> ContainerState:
        raw = raw or {}
        waiting = raw.get("waiting")
        return cls(
            waiting_reason=str(waiting.get("reason") or "") if waiting is not None else None,
            running=raw.get("running") is not None,
            terminated=TerminatedState.from_raw(raw.get("terminated")),
        )


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    ready: bool = False
    state: ContainerState = field(default_factory=ContainerState)
    last_state: ContainerState = field(default_factory=ContainerState)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ContainerStatus:
        return cls(
            name=str(raw.get("name", "")),
            ready=bool(raw.get("ready", False)),
            state=ContainerState.from_raw(raw.get("state")),
            last_state=ContainerState.from_raw(raw.get("lastState")),
        )


@dataclass(frozen=True)
class PodSnapshot:
    """Pod state relevant to health classification."""

    name: str
    namespace: str
    phase: str = ""
    reason: str = ""
    init_container_count: int = 0
    init_container_statuses: tuple[ContainerStatus, ...] = ()
    container_statuses: tuple[ContainerStatus, ...] = ()
    deletion_timestamp: datetime | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any], namespace: str = "") -> PodSnapshot:
        """Parse a pod object; *namespace* fills in a missing metadata.namespace."""
        metadata = raw.get("metadata") or {}
        spec = raw.get("spec") or {}
        status = raw.get("status") or {}
        return cls(
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace") or namespace),
            phase=str(status.get("phase") or ""),
            reason=str(status.get("reason") or ""),
            init_container_count=len(spec.get("initContainers") or []),
            init_container_statuses=tuple(
                ContainerStatus.from_raw(c) for c in status.get("initContainerStatuses") or []
            ),
            container_statuses=tuple(ContainerStatus.from_raw(c) for c in status.get("containerStatuses") or []),
            deletion_timestamp=_parse_ts(metadata.get("deletionTimestamp")),
        )

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(kind=ResourceKind.POD, name=self.name, namespace=self.namespace)
