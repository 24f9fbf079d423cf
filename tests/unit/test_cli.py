"""Tests for the kube-problem CLI."""

from __future__ import annotations

import json
import os
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from kubeproblem.cli import cli
from kubeproblem.cli.main import collect_problems
from kubeproblem.models.config import KubeProblemConfig, WatchConfig
from kubeproblem.models.problems import DetectedProblem, ProblemKind, ResourceKind, ResourceRef
from tests.factories import NOW, FakeSource, crashlooping_pod, make_node, make_pod, node_with_condition, restarted_pod


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("KUBEPROBLEM_"):
            monkeypatch.delenv(key)
    # Keep structlog off the CliRunner streams, which are closed after each invoke.
    monkeypatch.setattr("kubeproblem.cli.main.setup_logging", lambda *args, **kwargs: None)


_PROBLEM = DetectedProblem(
    ref=ResourceRef(kind=ResourceKind.POD, name="api-0", namespace="prod"),
    kind=ProblemKind.POD_CRITICAL_STATUS,
    message="Pod 'prod/api-0' has critical status 'CrashLoopBackOff'",
)


# ---------------------------------------------------------------------------
# collect_problems
# ---------------------------------------------------------------------------


class TestCollectProblems:
    async def test_collects_node_and_pod_problems(self) -> None:
        source = FakeSource()
        source.nodes = [make_node("node-a"), node_with_condition("node-b", "MemoryPressure", "True")]
        source.pods = {
            "prod": [make_pod("ok", namespace="prod"), crashlooping_pod("bad", "prod")],
            "staging": [restarted_pod(NOW - timedelta(minutes=5), name="flaky")],
        }
        config = KubeProblemConfig(watch=WatchConfig(watch_nodes=True, namespaces=["prod", "staging"]))

        problems = await collect_problems(source, config, NOW)

        assert [(p.ref.name, p.kind) for p in problems] == [
            ("node-b", ProblemKind.NODE_CONDITION),
            ("bad", ProblemKind.POD_CRITICAL_STATUS),
            ("flaky", ProblemKind.POD_RESTART),
        ]

    async def test_nodes_skipped_when_disabled(self) -> None:
        source = FakeSource()
        source.nodes = [node_with_condition("node-b", "Ready", "False")]
        config = KubeProblemConfig(watch=WatchConfig(watch_nodes=False, namespaces=[]))

        assert await collect_problems(source, config, NOW) == []
        assert source.list_calls == []


# ---------------------------------------------------------------------------
# scan command
# ---------------------------------------------------------------------------


class TestScanCommand:
    def test_no_problems(self) -> None:
        with patch("kubeproblem.cli.main._scan", AsyncMock(return_value=[])):
            result = CliRunner().invoke(cli, ["scan"])
        assert result.exit_code == 0
        assert "No problems found." in result.output

    def test_problems_exit_non_zero(self) -> None:
        with patch("kubeproblem.cli.main._scan", AsyncMock(return_value=[_PROBLEM])):
            result = CliRunner().invoke(cli, ["scan", "-n", "prod"])
        assert result.exit_code == 1
        assert "PodCriticalStatus" in result.output
        assert "Pod/prod/api-0" in result.output

    def test_json_output(self) -> None:
        with patch("kubeproblem.cli.main._scan", AsyncMock(return_value=[_PROBLEM])):
            result = CliRunner().invoke(cli, ["scan", "-o", "json"])
        assert json.loads(result.output) == [
            {
                "resource_kind": "Pod",
                "namespace": "prod",
                "name": "api-0",
                "problem_kind": "PodCriticalStatus",
                "message": "Pod 'prod/api-0' has critical status 'CrashLoopBackOff'",
            }
        ]

    def test_namespace_flags_override_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEPROBLEM_WATCH_NAMESPACES", "default")
        scan = AsyncMock(return_value=[])
        with patch("kubeproblem.cli.main._scan", scan):
            CliRunner().invoke(cli, ["scan", "--no-watch-nodes", "-n", "b", "-n", "a", "-n", "b"])
        (config,) = scan.await_args.args
        assert config.watch.watch_nodes is False
        assert config.watch.namespaces == ["b", "a"]

    def test_nothing_to_watch_is_a_usage_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEPROBLEM_WATCH_NAMESPACES", "")
        result = CliRunner().invoke(cli, ["scan", "--no-watch-nodes"])
        assert result.exit_code == 2
        assert "Nothing to watch" in result.output

    def test_bad_environment_is_a_usage_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEPROBLEM_POLL_INTERVAL", "soon")
        result = CliRunner().invoke(cli, ["scan"])
        assert result.exit_code == 2
        assert "must be an integer" in result.output


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_interval_override_reaches_main(self) -> None:
        main = AsyncMock(return_value=None)
        with patch("kubeproblem.app.main", main):
            result = CliRunner().invoke(cli, ["run", "--interval", "30", "-n", "prod"])
        assert result.exit_code == 0
        (config,) = main.await_args.args
        assert config.watch.poll_interval_seconds == 30
        assert config.watch.namespaces == ["prod"]

    def test_interval_out_of_range(self) -> None:
        result = CliRunner().invoke(cli, ["run", "--interval", "0"])
        assert result.exit_code == 2
