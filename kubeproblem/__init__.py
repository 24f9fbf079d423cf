"""kube-problem: debounced Slack alerts for unhealthy Kubernetes nodes and pods."""

__version__ = "0.3.0"
