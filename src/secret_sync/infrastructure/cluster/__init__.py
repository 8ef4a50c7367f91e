"""Cluster API boundary."""

from .base import ClusterClient
from .memory import InMemoryClusterClient

__all__ = ["ClusterClient", "InMemoryClusterClient"]
