"""Problem lifecycle: registry state and the reconciliation loop."""

from kubeproblem.lifecycle.controller import CycleResult, LifecycleController
from kubeproblem.lifecycle.registry import STALE_AFTER, ProblemRegistry

__all__ = ["STALE_AFTER", "CycleResult", "LifecycleController", "ProblemRegistry"]
