"""Tests for the node classifier."""

from __future__ import annotations

import pytest

from kubeproblem.classifiers.node import classify_node
from kubeproblem.models.problems import ProblemKind, ResourceKind
from tests.factories import make_node, node_with_condition, usage


class TestConditions:
    def test_healthy_node_without_metrics(self) -> None:
        assert classify_node(make_node(), None, metrics_available=False) is None

    def test_healthy_node_with_metrics(self) -> None:
        assert classify_node(make_node(), usage("500m", "2Gi"), metrics_available=True) is None

    def test_disk_pressure(self) -> None:
        node = node_with_condition("node-a", "DiskPressure", "True", "kubelet has disk pressure")
        problem = classify_node(node, usage(), metrics_available=True)
        assert problem is not None
        assert problem.kind == ProblemKind.NODE_CONDITION
        assert problem.message == "Node node-a has condition (DiskPressure) with status 'True': kubelet has disk pressure"
        assert problem.ref.kind == ResourceKind.NODE
        assert problem.ref.namespace == ""

    @pytest.mark.parametrize("status", ["False", "Unknown"])
    def test_not_ready(self, status: str) -> None:
        node = node_with_condition("node-a", "Ready", status)
        problem = classify_node(node, None, metrics_available=False)
        assert problem is not None
        assert problem.kind == ProblemKind.NODE_CONDITION
        assert problem.message == f"Node node-a has ready status '{status}'"

    def test_unknown_pressure_condition_is_a_problem(self) -> None:
        node = node_with_condition("node-a", "MemoryPressure", "Unknown")
        problem = classify_node(node, None, metrics_available=False)
        assert problem is not None
        assert problem.message == "Node node-a has condition (MemoryPressure) with status 'Unknown'"

    def test_unrecognised_condition_type_follows_the_false_rule(self) -> None:
        node = node_with_condition("node-a", "NetworkUnavailable", "True", "route missing")
        problem = classify_node(node, None, metrics_available=False)
        assert problem is not None
        assert "(NetworkUnavailable)" in problem.message

    def test_condition_wins_over_saturation(self) -> None:
        node = node_with_condition("node-a", "PIDPressure", "True")
        problem = classify_node(node, usage("4", "16Gi"), metrics_available=True)
        assert problem is not None
        assert problem.kind == ProblemKind.NODE_CONDITION


class TestResourcePressure:
    def test_missing_sample_while_metrics_available(self) -> None:
        problem = classify_node(make_node("node-a"), None, metrics_available=True)
        assert problem is not None
        assert problem.kind == ProblemKind.NODE_RESOURCE_PRESSURE
        assert problem.message == (
            "Metrics for node node-a cannot be retrieved. This could mean the node crashed or is under heavy load"
        )

    def test_cpu_saturation(self) -> None:
        problem = classify_node(make_node("node-a", cpu="4"), usage("3900m", "1Gi"), metrics_available=True)
        assert problem is not None
        assert problem.kind == ProblemKind.NODE_RESOURCE_PRESSURE
        assert problem.message == (
            "Node node-a has constantly around 100% cpu usage, this could slow down workloads running on the node"
        )

    def test_memory_saturation(self) -> None:
        problem = classify_node(make_node("node-a", memory="16Gi"), usage("100m", "15.5Gi"), metrics_available=True)
        assert problem is not None
        assert "100% memory usage" in problem.message

    def test_cpu_reported_when_both_saturated(self) -> None:
        problem = classify_node(make_node("node-a"), usage("4", "16Gi"), metrics_available=True)
        assert problem is not None
        assert "100% cpu usage" in problem.message

    def test_just_below_threshold(self) -> None:
        assert classify_node(make_node(cpu="4"), usage("3790m", "1Gi"), metrics_available=True) is None

    def test_exactly_at_threshold(self) -> None:
        problem = classify_node(make_node(cpu="4"), usage("3800m", "1Gi"), metrics_available=True)
        assert problem is not None

    def test_zero_allocatable_skips_check(self) -> None:
        node = make_node(cpu="0", memory="0")
        assert classify_node(node, usage("2", "8Gi"), metrics_available=True) is None

    def test_saturation_ignored_without_metrics_api(self) -> None:
        assert classify_node(make_node(), usage("4", "16Gi"), metrics_available=False) is None
