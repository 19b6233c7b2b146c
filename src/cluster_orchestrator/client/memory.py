"""
In memory cluster client.

This client is used for tests and local simulations.
It behaves like a management plane object store keyed by namespace and name.

Features
- Records every call for assertions
- Rejects duplicate creates and deletes of unknown clusters
- Can inject create or delete failures per cluster name
- Honors caller cancellation before touching state
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from cluster_orchestrator.core.errors import ClientError, ClusterAlreadyExists, DeleteNotFound, OperationCancelled
from cluster_orchestrator.core.types import RenderedManifest, RequestContext
from cluster_orchestrator.client.base import ClusterClient


@dataclass
class InMemoryClusterClient(ClusterClient):
    """
    In memory cluster client.

    fail_create
    Optional mapping of cluster name to error message raised on create.

    fail_delete
    Optional mapping of cluster name to error message raised on delete.

    calls
    Ordered (operation, namespace, name) tuples, one per call.
    """

    fail_create: dict[str, str] = field(default_factory=dict)
    fail_delete: dict[str, str] = field(default_factory=dict)
    clusters: dict[tuple[str, str], RenderedManifest] = field(default_factory=dict)
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def cluster_exists(self, name: str, namespace: str, context: RequestContext) -> bool:
        self._check_cancelled(context, "get")
        with self._lock:
            self.calls.append(("get", namespace, name))
            return (namespace, name) in self.clusters

    def create_cluster(self, manifest: RenderedManifest, context: RequestContext) -> None:
        self._check_cancelled(context, "create")
        key = (manifest.namespace, manifest.name)
        with self._lock:
            self.calls.append(("create", manifest.namespace, manifest.name))
            if manifest.name in self.fail_create:
                raise ClientError(self.fail_create[manifest.name])
            if key in self.clusters:
                raise ClusterAlreadyExists(
                    f"{manifest.kind} {manifest.name} already exists in namespace {manifest.namespace}"
                )
            self.clusters[key] = manifest

    def delete_cluster(self, name: str, namespace: str, context: RequestContext) -> None:
        self._check_cancelled(context, "delete")
        key = (namespace, name)
        with self._lock:
            self.calls.append(("delete", namespace, name))
            if name in self.fail_delete:
                raise ClientError(self.fail_delete[name])
            if key not in self.clusters:
                raise DeleteNotFound(f"cluster {name} not found in namespace {namespace}")
            del self.clusters[key]

    def operations(self, name: str) -> list[str]:
        """Return the operations recorded for one cluster name, in order."""
        with self._lock:
            return [op for op, _, n in self.calls if n == name]

    @staticmethod
    def _check_cancelled(context: RequestContext, operation: str) -> None:
        if context.cancelled:
            raise OperationCancelled(f"{operation} cancelled by caller")
