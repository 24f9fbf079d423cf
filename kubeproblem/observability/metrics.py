"""Prometheus collectors for the reconciliation loop and notifier."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

cycles_total = Counter(
    "kubeproblem_cycles_total",
    "Completed poll cycles.",
)

cycle_duration_seconds = Histogram(
    "kubeproblem_cycle_duration_seconds",
    "Wall time spent classifying all watched resources in one cycle.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

problems_detected_total = Counter(
    "kubeproblem_problems_detected_total",
    "Problem detections per cycle, before debouncing.",
    ["problem_kind"],
)

notifications_total = Counter(
    "kubeproblem_notifications_total",
    "Notification attempts by message type and outcome.",
    ["type", "success"],
)

stale_evictions_total = Counter(
    "kubeproblem_stale_evictions_total",
    "Problem records dropped because their resource was no longer observed.",
)

tracked_problems = Gauge(
    "kubeproblem_tracked_problems",
    "Problem records currently held in the registry.",
)

node_metrics_available = Gauge(
    "kubeproblem_node_metrics_available",
    "1 when the metrics API answered during the last cycle, else 0.",
)
