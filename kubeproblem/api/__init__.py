"""Status API for kube-problem.

Exposes:
    create_app -- FastAPI application factory.
"""

from kubeproblem.api.app import create_app

__all__ = ["create_app"]
