"""Outdated Helm release and container image tracking for Kubernetes clusters."""

__version__ = "0.1.0"
