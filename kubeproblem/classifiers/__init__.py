"""Pure classifiers mapping one node or pod snapshot to at most one problem.

Exposes:
    classify_node -- node conditions, missing metrics, cpu/memory saturation.
    classify_pod  -- critical status, restarts, pods that never start.
    pod_status    -- kubectl-style display status of a pod.
"""

from kubeproblem.classifiers.node import classify_node
from kubeproblem.classifiers.pod import classify_pod, pod_status

__all__ = ["classify_node", "classify_pod", "pod_status"]
