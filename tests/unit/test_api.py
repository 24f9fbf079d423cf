"""Tests for the status API (FastAPI TestClient)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from kubeproblem.api import create_app
from kubeproblem.lifecycle.registry import ProblemRegistry
from kubeproblem.models.problems import DetectedProblem, ProblemKind, ResourceKind, ResourceRef

POD = ResourceRef(kind=ResourceKind.POD, name="api-0", namespace="prod")
NODE = ResourceRef(kind=ResourceKind.NODE, name="node-a")


def _controller(last_cycle_at: datetime | None, interval: float = 10.0) -> SimpleNamespace:
    return SimpleNamespace(last_cycle_at=last_cycle_at, interval=interval)


@pytest.fixture
def registry() -> ProblemRegistry:
    registry = ProblemRegistry()
    now = datetime.now(tz=UTC)
    critical = registry.report(
        DetectedProblem(ref=POD, kind=ProblemKind.POD_CRITICAL_STATUS, message="Pod 'prod/api-0' has critical status 'Error'"),
        now,
    )
    assert critical is not None
    registry.mark_reported(critical)
    registry.report(
        DetectedProblem(ref=NODE, kind=ProblemKind.NODE_RESOURCE_PRESSURE, message="Node node-a is saturated"),
        now + timedelta(seconds=1),
    )
    return registry


def _client(registry: ProblemRegistry, last_cycle_at: datetime | None) -> TestClient:
    return TestClient(create_app(registry=registry, controller=_controller(last_cycle_at)))


# ---------------------------------------------------------------------------
# /healthz
# ---------------------------------------------------------------------------


class TestHealthz:
    def test_starting_before_first_cycle(self, registry: ProblemRegistry) -> None:
        response = _client(registry, None).get("/healthz")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "starting"
        assert body["last_cycle_at"] is None
        assert body["tracked_problems"] == 2

    def test_ok_after_recent_cycle(self, registry: ProblemRegistry) -> None:
        response = _client(registry, datetime.now(tz=UTC)).get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_stalled_when_cycles_stop(self, registry: ProblemRegistry) -> None:
        response = _client(registry, datetime.now(tz=UTC) - timedelta(minutes=5)).get("/healthz")
        assert response.status_code == 503
        assert response.json()["status"] == "stalled"


# ---------------------------------------------------------------------------
# /api/v1/problems
# ---------------------------------------------------------------------------


class TestProblems:
    def test_lists_all_records(self, registry: ProblemRegistry) -> None:
        response = _client(registry, None).get("/api/v1/problems")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        first = body["problems"][0]
        assert first["resource_kind"] == "Pod"
        assert first["namespace"] == "prod"
        assert first["problem_kind"] == "PodCriticalStatus"
        assert first["reported"] is True
        assert first["resolve_threshold"] == 10

    def test_filter_unreported(self, registry: ProblemRegistry) -> None:
        body = _client(registry, None).get("/api/v1/problems", params={"reported": "false"}).json()
        assert body["count"] == 1
        problem = body["problems"][0]
        assert problem["name"] == "node-a"
        assert problem["occurrences"] == 1
        assert problem["report_threshold"] == 10

    def test_invalid_filter_uses_error_envelope(self, registry: ProblemRegistry) -> None:
        response = _client(registry, None).get("/api/v1/problems", params={"reported": "maybe"})
        assert response.status_code == 400
        assert response.json() == {"error": "INVALID_PARAMETER", "detail": "Invalid value for 'reported'"}

    def test_empty_registry(self) -> None:
        body = _client(ProblemRegistry(), None).get("/api/v1/problems").json()
        assert body == {"count": 0, "problems": []}


# ---------------------------------------------------------------------------
# /metrics
# ---------------------------------------------------------------------------


class TestMetricsEndpoint:
    def test_exposes_prometheus_text(self, registry: ProblemRegistry) -> None:
        response = _client(registry, None).get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "kubeproblem_tracked_problems" in response.text


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_unhandled_error_uses_error_envelope(self) -> None:
        broken = SimpleNamespace(records=lambda: 1 / 0)
        app = create_app(registry=broken, controller=_controller(None))
        response = TestClient(app, raise_server_exceptions=False).get("/api/v1/problems")
        assert response.status_code == 500
        assert response.json() == {"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."}

    def test_no_docs_endpoints(self, registry: ProblemRegistry) -> None:
        client = _client(registry, None)
        assert client.get("/docs").status_code == 404
        assert client.get("/openapi.json").status_code == 404
