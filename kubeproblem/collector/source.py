"""Resource snapshot source backed by kubernetes-asyncio.

Lists nodes and pods through the core API and node usage through the
``metrics.k8s.io`` aggregated API. Listing failures raise SnapshotError and
end the run; metrics failures only disable resource-pressure checks for the
current cycle.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import aiohttp
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubeproblem.models.snapshots import NodeSnapshot, PodSnapshot, UsageSample
from kubeproblem.observability.logging import get_logger

_log = get_logger("collector.source")

METRICS_GROUP = "metrics.k8s.io"
SUPPORTED_METRICS_VERSIONS = ("v1beta1",)

_API_ERRORS = (ApiException, aiohttp.ClientError, asyncio.TimeoutError)


class SnapshotError(Exception):
    """Raised when cluster resources cannot be listed or accessed."""


class SnapshotSource(Protocol):
    """What the lifecycle controller needs from the cluster."""

    async def list_nodes(self) -> list[NodeSnapshot]: ...

    async def list_pods(self, namespace: str) -> list[PodSnapshot]: ...

    async def get_node_metrics(self) -> tuple[dict[str, UsageSample], bool]: ...


async def load_kube_config() -> None:
    """Configure kubernetes-asyncio from the service account, else kubeconfig."""
    from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

    try:
        k8s_config.load_incluster_config()
        _log.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        _log.info("k8s client configured from kubeconfig")


class KubeSnapshotSource:
    """SnapshotSource over a kubernetes-asyncio ApiClient.

    Args:
        api_client: Configured ApiClient; a default one is created if omitted.
    """

    def __init__(self, api_client: Any = None) -> None:
        self._api_client = api_client or k8s_client.ApiClient()
        self._core = k8s_client.CoreV1Api(self._api_client)
        self._custom = k8s_client.CustomObjectsApi(self._api_client)
        self._apis = k8s_client.ApisApi(self._api_client)
        self._metrics_api_available = False

    @property
    def metrics_api_available(self) -> bool:
        return self._metrics_api_available

    async def probe_metrics_api(self) -> bool:
        """Check discovery for a supported ``metrics.k8s.io`` version.

        Raises:
            SnapshotError: if the discovery API itself cannot be queried.
        """
        try:
            groups = await self._apis.get_api_versions()
        except _API_ERRORS as exc:
            raise SnapshotError(f"Error querying API discovery: {_describe(exc)}") from exc

        available = False
        for group in groups.groups or []:
            if group.name != METRICS_GROUP:
                continue
            if any(v.version in SUPPORTED_METRICS_VERSIONS for v in group.versions or []):
                available = True
        self._metrics_api_available = available
        _log.info("metrics_api_probed", available=available)
        return available

    async def verify_access(self, watch_nodes: bool, namespaces: list[str]) -> None:
        """Fail fast when the configured nodes or namespaces are not readable.

        Raises:
            SnapshotError: naming the first resource that cannot be read.
        """
        if watch_nodes:
            try:
                await self._core.list_node(limit=1)
            except _API_ERRORS as exc:
                raise SnapshotError(f"Error retrieving nodes: {_describe(exc)}") from exc
        for namespace in namespaces:
            try:
                await self._core.read_namespace(namespace)
            except _API_ERRORS as exc:
                raise SnapshotError(f"Error retrieving namespace {namespace}: {_describe(exc)}") from exc

    async def list_nodes(self) -> list[NodeSnapshot]:
        try:
            node_list = await self._core.list_node()
        except _API_ERRORS as exc:
            raise SnapshotError(f"Error listing nodes: {_describe(exc)}") from exc
        return [NodeSnapshot.from_raw(self._to_dict(item)) for item in node_list.items or []]

    async def list_pods(self, namespace: str) -> list[PodSnapshot]:
        try:
            pod_list = await self._core.list_namespaced_pod(namespace)
        except _API_ERRORS as exc:
            raise SnapshotError(f"Error listing pods in namespace {namespace}: {_describe(exc)}") from exc
        return [PodSnapshot.from_raw(self._to_dict(item), namespace=namespace) for item in pod_list.items or []]

    async def get_node_metrics(self) -> tuple[dict[str, UsageSample], bool]:
        """Return usage samples keyed by node name and whether metrics were available."""
        if not self._metrics_api_available:
            return {}, False
        try:
            result = await self._custom.list_cluster_custom_object(
                group=METRICS_GROUP,
                version=SUPPORTED_METRICS_VERSIONS[0],
                plural="nodes",
            )
        except _API_ERRORS as exc:
            _log.warning("metrics_unavailable", error=_describe(exc))
            return {}, False

        samples: dict[str, UsageSample] = {}
        for item in result.get("items", []):
            name = (item.get("metadata") or {}).get("name")
            if not name:
                continue
            try:
                samples[name] = UsageSample.from_raw(item)
            except ValueError as exc:
                _log.warning("metrics_sample_unparseable", node=name, error=str(exc))
        return samples, True

    async def close(self) -> None:
        await self._api_client.close()

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]


def _describe(exc: BaseException) -> str:
    if isinstance(exc, ApiException):
        return f"{exc.status} {exc.reason}"
    return repr(exc)
