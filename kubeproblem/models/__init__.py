"""Core data structures for kube-problem."""

from kubeproblem.models.config import KubeProblemConfig
from kubeproblem.models.problems import (
    DetectedProblem,
    ProblemKind,
    ProblemPolicy,
    ProblemRecord,
    ResourceKind,
    ResourceRef,
)
from kubeproblem.models.snapshots import (
    ContainerState,
    ContainerStatus,
    NodeCondition,
    NodeSnapshot,
    PodSnapshot,
    TerminatedState,
    UsageSample,
)

__all__ = [
    "ContainerState",
    "ContainerStatus",
    "DetectedProblem",
    "KubeProblemConfig",
    "NodeCondition",
    "NodeSnapshot",
    "PodSnapshot",
    "ProblemKind",
    "ProblemPolicy",
    "ProblemRecord",
    "ResourceKind",
    "ResourceRef",
    "TerminatedState",
    "UsageSample",
]
