"""
Kubernetes API cluster client.

This client talks to the management plane through the official kubernetes
Python client. Cluster objects and FeatureGate objects are custom resources, so
every call goes through CustomObjectsApi.

Cancellation
The caller context is checked before every request. The remaining caller
timeout is passed to each request as _request_timeout, so a request never
outlives the caller deadline. A request that hits the deadline raises
OperationCancelled.

Error mapping
ApiException 404 on delete becomes DeleteNotFound
ApiException 409 on create becomes ClusterAlreadyExists
any other ApiException or transport error becomes ClientError
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from cluster_orchestrator.client.base import ClusterClient
from cluster_orchestrator.core.constants import (
    CLUSTER_API_VERSION,
    CLUSTER_KIND,
    CLUSTER_PLURAL,
    FEATURE_GATE_GROUP,
    FEATURE_GATE_PLURAL,
    FEATURE_GATE_RESOURCE,
    FEATURE_GATE_VERSION,
    TKC_API_VERSION,
    TKC_KIND,
    TKC_PLURAL,
)
from cluster_orchestrator.core.errors import ClientError, ClusterAlreadyExists, DeleteNotFound, OperationCancelled
from cluster_orchestrator.core.types import FeatureGate, RenderedManifest, RequestContext
from cluster_orchestrator.features.sources import CapabilitySource, gates_from_feature_gate_objects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomResource:
    group: str
    version: str
    plural: str

    @classmethod
    def from_api_version(cls, api_version: str, plural: str) -> CustomResource:
        group, _, version = api_version.partition("/")
        return cls(group=group, version=version, plural=plural)

    def __str__(self) -> str:
        return f"{self.plural}.{self.group}"


TKC_RESOURCE = CustomResource.from_api_version(TKC_API_VERSION, TKC_PLURAL)
CLUSTER_RESOURCE = CustomResource.from_api_version(CLUSTER_API_VERSION, CLUSTER_PLURAL)

_PLURAL_BY_KIND = {TKC_KIND: TKC_PLURAL, CLUSTER_KIND: CLUSTER_PLURAL}


class _NotFound(ClientError):
    pass


def load_api_client(kubeconfig: str = "", context_name: str = "") -> client.ApiClient:
    """
    Build an ApiClient for the management plane.

    With no kubeconfig and no context the in cluster configuration is tried
    first, then the default kubeconfig.
    """
    if not kubeconfig and not context_name:
        try:
            config.load_incluster_config()
            logger.info("loaded in-cluster Kubernetes configuration")
            return client.ApiClient()
        except config.ConfigException:
            pass

    try:
        api_client = config.new_client_from_config(
            config_file=kubeconfig or None,
            context=context_name or None,
        )
    except config.ConfigException as exc:
        raise ClientError(f"cannot load Kubernetes configuration: {exc}") from exc
    logger.info("loaded kubeconfig %s context %s", kubeconfig or "default", context_name or "current")
    return api_client


class LazyCustomObjectsApi:
    """
    CustomObjectsApi that loads its configuration on first use.

    Dry runs never touch the management plane, so they work without a
    kubeconfig.
    """

    def __init__(self, kubeconfig: str = "", context_name: str = ""):
        self._kubeconfig = kubeconfig
        self._context_name = context_name
        self._api: client.CustomObjectsApi | None = None

    def __getattr__(self, name: str) -> Any:
        if self._api is None:
            self._api = client.CustomObjectsApi(load_api_client(self._kubeconfig, self._context_name))
        return getattr(self._api, name)


class _Deadline:
    """Remaining caller time across the requests of one client call."""

    def __init__(self, context: RequestContext):
        self._context = context
        self._expires = None
        if context.timeout_seconds is not None:
            self._expires = time.monotonic() + context.timeout_seconds

    def request_timeout(self, description: str) -> float | None:
        if self._context.cancelled:
            raise OperationCancelled(f"{description} cancelled by caller")
        if self._expires is None:
            return None
        remaining = self._expires - time.monotonic()
        if remaining <= 0:
            raise OperationCancelled(f"{description} timed out after {self._context.timeout_seconds} seconds")
        return remaining

    def sleep(self, seconds: float, description: str) -> None:
        timeout = self.request_timeout(description)
        if timeout is not None:
            seconds = min(seconds, timeout)
        if self._context.cancel.wait(seconds):
            raise OperationCancelled(f"{description} cancelled by caller")


def _call(
    description: str,
    deadline: _Deadline,
    request: Callable[..., Any],
    status_errors: Mapping[int, type[ClientError]] | None = None,
    **kwargs: Any,
) -> Any:
    timeout = deadline.request_timeout(description)
    if timeout is not None:
        kwargs["_request_timeout"] = timeout
    logger.debug("%s", description)

    try:
        return request(**kwargs)
    except ApiException as exc:
        error_type = (status_errors or {}).get(exc.status, ClientError)
        raise error_type(f"{description} failed: ({exc.status}) {exc.reason}") from exc
    except urllib3.exceptions.HTTPError as exc:
        reason = getattr(exc, "reason", None)
        if isinstance(exc, urllib3.exceptions.TimeoutError) or isinstance(reason, urllib3.exceptions.TimeoutError):
            raise OperationCancelled(f"{description} timed out") from exc
        raise ClientError(f"{description} failed: {exc}") from exc


def _exists(api: client.CustomObjectsApi, resource: CustomResource, name: str, namespace: str, deadline: _Deadline) -> bool:
    try:
        _call(
            f"get {resource} {namespace}/{name}",
            deadline,
            api.get_namespaced_custom_object,
            {404: _NotFound},
            group=resource.group,
            version=resource.version,
            namespace=namespace,
            plural=resource.plural,
            name=name,
        )
    except _NotFound:
        return False
    return True


@dataclass(frozen=True)
class KubeClusterClient(ClusterClient):
    """
    Cluster client backed by CustomObjectsApi.

    wait_for_delete
    When True, delete polls until the object is gone. The caller timeout
    still applies.
    """

    api: client.CustomObjectsApi
    wait_for_delete: bool = True
    poll_interval_seconds: float = 2.0

    def cluster_exists(self, name: str, namespace: str, context: RequestContext) -> bool:
        deadline = _Deadline(context)
        return any(_exists(self.api, r, name, namespace, deadline) for r in (TKC_RESOURCE, CLUSTER_RESOURCE))

    def create_cluster(self, manifest: RenderedManifest, context: RequestContext) -> None:
        plural = _PLURAL_BY_KIND.get(manifest.kind)
        if plural is None:
            raise ClientError(f"unsupported manifest kind {manifest.kind}")
        resource = CustomResource.from_api_version(str(manifest.body["apiVersion"]), plural)

        _call(
            f"create {resource} {manifest.namespace}/{manifest.name}",
            _Deadline(context),
            self.api.create_namespaced_custom_object,
            {409: ClusterAlreadyExists},
            group=resource.group,
            version=resource.version,
            namespace=manifest.namespace,
            plural=resource.plural,
            body=manifest.body,
        )

    def delete_cluster(self, name: str, namespace: str, context: RequestContext) -> None:
        deadline = _Deadline(context)
        resource = TKC_RESOURCE if _exists(self.api, TKC_RESOURCE, name, namespace, deadline) else CLUSTER_RESOURCE
        description = f"delete {resource} {namespace}/{name}"

        _call(
            description,
            deadline,
            self.api.delete_namespaced_custom_object,
            {404: DeleteNotFound},
            group=resource.group,
            version=resource.version,
            namespace=namespace,
            plural=resource.plural,
            name=name,
        )

        if not self.wait_for_delete:
            return
        while _exists(self.api, resource, name, namespace, deadline):
            logger.debug("waiting for %s %s/%s to go away", resource, namespace, name)
            deadline.sleep(self.poll_interval_seconds, description)


@dataclass(frozen=True)
class KubeCapabilitySource(CapabilitySource):
    """Read FeatureGate objects from the management plane."""

    api: client.CustomObjectsApi

    def list_feature_gates(self) -> list[FeatureGate]:
        payload = _call(
            f"list {FEATURE_GATE_RESOURCE}",
            _Deadline(RequestContext()),
            self.api.list_cluster_custom_object,
            group=FEATURE_GATE_GROUP,
            version=FEATURE_GATE_VERSION,
            plural=FEATURE_GATE_PLURAL,
        )
        if not isinstance(payload, dict):
            raise ClientError(f"unexpected {FEATURE_GATE_RESOURCE} response")
        items = [x for x in payload.get("items", []) if isinstance(x, dict)]
        return gates_from_feature_gate_objects(items)
