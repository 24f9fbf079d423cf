"""Pod classifier.

``pod_status`` reproduces the STATUS column of ``kubectl get pods`` and
``classify_pod`` maps that status onto a problem kind.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from kubeproblem.models.problems import DetectedProblem, ProblemKind
from kubeproblem.models.snapshots import ContainerStatus, PodSnapshot

CRITICAL_STATUSES = frozenset(
    {
        "Error",
        "Unknown",
        "ImagePullBackOff",
        "CrashLoopBackOff",
        "RunContainerError",
        "ErrImagePull",
        "CreateContainerConfigError",
        "InvalidImageName",
        "Evicted",
    }
)

OKAY_STATUSES = frozenset({"Completed", "Running"})

RESTART_WINDOW = timedelta(hours=1)

# Pod reason set by the node lifecycle controller when the node stops responding.
NODE_UNREACHABLE_REASON = "NodeLost"


def pod_status(pod: PodSnapshot) -> str:
    """Derive the single human-readable status of *pod*."""
    reason = pod.reason or pod.phase

    init_reason = _init_status(pod)
    if init_reason is not None:
        reason = init_reason
    else:
        reason = _container_status(pod.container_statuses, reason)

    if pod.deletion_timestamp is not None:
        return "Unknown" if pod.reason == NODE_UNREACHABLE_REASON else "Terminating"
    return reason


def _init_status(pod: PodSnapshot) -> str | None:
    """Return an ``Init:*`` status while the pod is initializing, else None."""
    for index, container in enumerate(pod.init_container_statuses):
        terminated = container.state.terminated
        if terminated is not None and terminated.exit_code == 0:
            continue
        if terminated is not None:
            if terminated.reason:
                return f"Init:{terminated.reason}"
            if terminated.signal != 0:
                return f"Init:Signal:{terminated.signal}"
            return f"Init:ExitCode:{terminated.exit_code}"
        waiting = container.state.waiting_reason
        if waiting and waiting != "PodInitializing":
            return f"Init:{waiting}"
        return f"Init:{index}/{pod.init_container_count}"
    return None


def _container_status(statuses: tuple[ContainerStatus, ...], reason: str) -> str:
    has_running = False
    for container in reversed(statuses):
        state = container.state
        if state.waiting_reason:
            reason = state.waiting_reason
        elif state.terminated is not None and state.terminated.reason:
            reason = state.terminated.reason
        elif state.terminated is not None:
            if state.terminated.signal != 0:
                reason = f"Signal:{state.terminated.signal}"
            else:
                reason = f"ExitCode:{state.terminated.exit_code}"
        elif container.ready and state.running:
            has_running = True

    if reason == "Completed" and has_running:
        return "Running"
    return reason


def classify_pod(pod: PodSnapshot, now: datetime) -> DetectedProblem | None:
    """Return the problem *pod* has in this cycle, or None if it is healthy."""
    ref = pod.ref
    status = pod_status(pod)

    if status in CRITICAL_STATUSES:
        return DetectedProblem(
            ref=ref,
            kind=ProblemKind.POD_CRITICAL_STATUS,
            message=f"Pod '{pod.namespace}/{pod.name}' has critical status '{status}'",
        )

    if status not in OKAY_STATUSES:
        return DetectedProblem(
            ref=ref,
            kind=ProblemKind.POD_PENDING,
            message=f"Pod '{pod.namespace}/{pod.name}' is not starting with status '{status}'",
        )

    for container in pod.container_statuses:
        terminated = container.last_state.terminated
        if terminated is None or terminated.finished_at is None or terminated.exit_code == 0:
            continue
        elapsed = now - terminated.finished_at
        if elapsed <= RESTART_WINDOW:
            return DetectedProblem(
                ref=ref,
                kind=ProblemKind.POD_RESTART,
                message=(
                    f"Pod '{pod.namespace}/{pod.name}' has restarted {int(elapsed.total_seconds())} seconds ago "
                    f"due to '{terminated.reason}' with exit code '{terminated.exit_code}'"
                ),
            )
    return None
