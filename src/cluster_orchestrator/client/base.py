"""
Management plane client interfaces.

Goal
Define a narrow interface for cluster object calls without binding the
orchestrator to the Kubernetes API, a simulator, or anything else.

Error contract
Implementations raise ClientError or one of its subclasses:
DeleteNotFound when the cluster to delete does not exist
ClusterAlreadyExists when create hits an existing name
OperationCancelled when the caller context is cancelled or times out

Retry and backoff belong to the implementation, never to the orchestrator.
"""

from __future__ import annotations

from typing import Protocol

from cluster_orchestrator.core.types import RenderedManifest, RequestContext


class ClusterClient(Protocol):
    """
    Cluster client interface expected by the lifecycle orchestrator.

    Every call receives the caller context so timeouts and cancellation reach
    the transport unchanged.
    """

    def cluster_exists(self, name: str, namespace: str, context: RequestContext) -> bool:
        """Return True when a cluster object with this name exists in the namespace."""

    def create_cluster(self, manifest: RenderedManifest, context: RequestContext) -> None:
        """Create the cluster object described by the manifest."""

    def delete_cluster(self, name: str, namespace: str, context: RequestContext) -> None:
        """Delete the cluster object with this name in the namespace."""
