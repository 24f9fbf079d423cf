"""``kube-problem`` command-line interface.

Commands:
    run  -- start the watcher daemon (environment config plus overrides).
    scan -- classify the watched resources once and print what is wrong,
            without thresholds or notifications.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import click

from kubeproblem.classifiers import classify_node, classify_pod
from kubeproblem.collector.source import KubeSnapshotSource, SnapshotError, SnapshotSource, load_kube_config
from kubeproblem.config import load_config
from kubeproblem.models.config import KubeProblemConfig
from kubeproblem.models.problems import DetectedProblem
from kubeproblem.observability.logging import setup_logging


def _target_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--watch-nodes/--no-watch-nodes",
        default=None,
        help="Watch cluster nodes (default: KUBEPROBLEM_WATCH_NODES).",
    )(func)
    func = click.option(
        "-n",
        "--namespace",
        "namespaces",
        multiple=True,
        help="Namespace to watch; repeatable (default: KUBEPROBLEM_WATCH_NAMESPACES).",
    )(func)
    return func


def _load(watch_nodes: bool | None, namespaces: tuple[str, ...]) -> KubeProblemConfig:
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if watch_nodes is not None:
        config.watch.watch_nodes = watch_nodes
    if namespaces:
        config.watch.namespaces = list(dict.fromkeys(namespaces))
    if not config.watch.watch_nodes and not config.watch.namespaces:
        raise click.UsageError("Nothing to watch: enable nodes or give at least one namespace.")
    return config


@click.group()
@click.version_option(package_name="kube-problem")
def cli() -> None:
    """Watch Kubernetes nodes and pods and report lasting problems."""


@cli.command()
@_target_options
@click.option("--interval", type=click.IntRange(1, 3600), default=None, help="Seconds between poll cycles.")
def run(watch_nodes: bool | None, namespaces: tuple[str, ...], interval: int | None) -> None:
    """Run the watcher until a fatal error or SIGTERM."""
    from kubeproblem.app import main

    config = _load(watch_nodes, namespaces)
    if interval is not None:
        config.watch.poll_interval_seconds = interval
    asyncio.run(main(config))


@cli.command()
@_target_options
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text", show_default=True)
def scan(watch_nodes: bool | None, namespaces: tuple[str, ...], output: str) -> None:
    """Classify every watched resource once. Exits 1 when a problem is found."""
    config = _load(watch_nodes, namespaces)
    setup_logging(config.log.level, console=True)
    problems = asyncio.run(_scan(config))

    if output == "json":
        click.echo(
            json.dumps(
                [
                    {
                        "resource_kind": p.ref.kind.value,
                        "namespace": p.ref.namespace,
                        "name": p.ref.name,
                        "problem_kind": p.kind.value,
                        "message": p.message,
                    }
                    for p in problems
                ],
                indent=2,
            )
        )
    elif not problems:
        click.echo("No problems found.")
    else:
        for p in problems:
            click.echo(f"{p.kind.value:<22} {p.ref!s:<50} {p.message}")

    if problems:
        raise SystemExit(1)


async def _scan(config: KubeProblemConfig) -> list[DetectedProblem]:
    await load_kube_config()
    source = KubeSnapshotSource()
    try:
        await source.probe_metrics_api()
        return await collect_problems(source, config, datetime.now(tz=UTC))
    except SnapshotError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        await source.close()


async def collect_problems(
    source: SnapshotSource,
    config: KubeProblemConfig,
    now: datetime,
) -> list[DetectedProblem]:
    """Run the classifiers over one snapshot of the watched resources."""
    problems: list[DetectedProblem] = []
    if config.watch.watch_nodes:
        samples, available = await source.get_node_metrics()
        for node in await source.list_nodes():
            problem = classify_node(node, samples.get(node.name), available)
            if problem is not None:
                problems.append(problem)
    for namespace in config.watch.namespaces:
        for pod in await source.list_pods(namespace):
            problem = classify_pod(pod, now)
            if problem is not None:
                problems.append(problem)
    return problems
