"""Collector package for kube-problem.

Submodules
----------
source -- SnapshotSource protocol and KubeSnapshotSource: node/pod listing,
          node usage from metrics.k8s.io, startup access checks.
"""

from kubeproblem.collector.source import KubeSnapshotSource, SnapshotError, SnapshotSource

__all__ = ["KubeSnapshotSource", "SnapshotError", "SnapshotSource"]
