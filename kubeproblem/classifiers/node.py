"""Node classifier.

Checks are evaluated in order and the first match wins, so a node with a
failing condition never surfaces a resource-pressure problem in the same
cycle. Only the highest-priority problem of a node is tracked until it clears.
"""

from __future__ import annotations

from kubeproblem.models.problems import DetectedProblem, ProblemKind
from kubeproblem.models.snapshots import NodeCondition, NodeSnapshot, UsageSample

SATURATION_RATIO = 0.95

_READY = "Ready"


def classify_node(
    node: NodeSnapshot,
    usage: UsageSample | None,
    metrics_available: bool,
) -> DetectedProblem | None:
    """Return the problem *node* has in this cycle, or None if it is healthy.

    Args:
        node:              Node snapshot.
        usage:             Usage sample for this node, if the metrics API had one.
        metrics_available: Whether the metrics API answered this cycle at all.
    """
    ref = node.ref

    condition = _first_bad_condition(node.conditions)
    if condition is not None:
        return DetectedProblem(ref=ref, kind=ProblemKind.NODE_CONDITION, message=_condition_message(node, condition))

    if not metrics_available:
        return None

    if usage is None:
        return DetectedProblem(
            ref=ref,
            kind=ProblemKind.NODE_RESOURCE_PRESSURE,
            message=(
                f"Metrics for node {node.name} cannot be retrieved. "
                "This could mean the node crashed or is under heavy load"
            ),
        )

    if _saturated(usage.cpu, node.cpu_allocatable):
        resource = "cpu"
    elif _saturated(usage.memory, node.memory_allocatable):
        resource = "memory"
    else:
        return None

    return DetectedProblem(
        ref=ref,
        kind=ProblemKind.NODE_RESOURCE_PRESSURE,
        message=(
            f"Node {node.name} has constantly around 100% {resource} usage, "
            "this could slow down workloads running on the node"
        ),
    )


def _first_bad_condition(conditions: tuple[NodeCondition, ...]) -> NodeCondition | None:
    for condition in conditions:
        if condition.type == _READY:
            if condition.status != "True":
                return condition
        elif condition.status != "False":
            return condition
    return None


def _condition_message(node: NodeSnapshot, condition: NodeCondition) -> str:
    if condition.type == _READY:
        msg = f"Node {node.name} has ready status '{condition.status}'"
    else:
        msg = f"Node {node.name} has condition ({condition.type}) with status '{condition.status}'"
    if condition.message:
        msg += f": {condition.message}"
    return msg


def _saturated(used: float, allocatable: float | None) -> bool:
    if not allocatable:
        return False
    return used / allocatable >= SATURATION_RATIO
