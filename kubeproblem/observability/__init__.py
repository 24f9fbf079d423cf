"""Logging and Prometheus metrics for kube-problem."""
