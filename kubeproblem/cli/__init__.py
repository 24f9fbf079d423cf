"""kube-problem command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kube-problem`` script).
"""

from kubeproblem.cli.main import cli

__all__ = ["cli"]
