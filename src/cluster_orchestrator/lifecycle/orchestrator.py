"""
Lifecycle orchestrator.

This orchestrator coordinates:
request validation, classification, feature gate checks, rendering, and then
either dry run emission or creation through the client. Delete is a separate
entry point that only needs the cluster name and namespace.

Failure handling
Every failure aborts the call and is returned in the result with a failed
outcome. Nothing is retried and nothing is rolled back. If the create call
fails after rendering, the caller decides whether to issue a delete.

Statelessness
No state survives between calls. Each call starts from idle and the request
is not kept after the call returns, so independent calls can run on separate
threads against one orchestrator.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from cluster_orchestrator.client.base import ClusterClient
from cluster_orchestrator.core.errors import (
    ClientError,
    ClusterAlreadyExists,
    InvalidClusterRequest,
    OrchestratorError,
)
from cluster_orchestrator.core.types import (
    ClusterRequest,
    ClusterSpecShape,
    DeleteClusterOptions,
    LifecycleOutcome,
    Plan,
    RenderedManifest,
    RequestContext,
)
from cluster_orchestrator.features.guard import FeatureGateGuard
from cluster_orchestrator.features.registry import FeatureGateRegistry
from cluster_orchestrator.lifecycle.states import ExecutionMode, LifecycleState
from cluster_orchestrator.render.renderer import ManifestRenderer
from cluster_orchestrator.render.sink import ManifestSink, stdout_sink
from cluster_orchestrator.spec.classifier import SpecClassifier

logger = logging.getLogger(__name__)

_CLUSTER_NAME = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_MAX_CLUSTER_NAME = 63


@dataclass
class LifecycleResult:
    """
    Result of one lifecycle call.

    outcome
    created, create_failed, deleted or delete_failed.

    error
    Set exactly when the outcome is a failure.

    states
    Every state the call went through, in order.

    shape and manifest
    Set once classification and rendering have happened.
    """

    outcome: LifecycleOutcome
    states: list[LifecycleState] = field(default_factory=list)
    mode: ExecutionMode | None = None
    shape: ClusterSpecShape | None = None
    manifest: RenderedManifest | None = None
    error: OrchestratorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class LifecycleOrchestrator:
    """
    Lifecycle orchestrator.

    client
    Management plane client used in apply mode and for delete.

    registry
    Feature gate registry consulted read only.

    sink
    Output sink for dry runs. Defaults to the process stdout sink.
    """

    def __init__(
        self,
        client: ClusterClient,
        registry: FeatureGateRegistry,
        sink: ManifestSink | None = None,
        classifier: SpecClassifier | None = None,
        renderer: ManifestRenderer | None = None,
    ) -> None:
        self._client = client
        self._guard = FeatureGateGuard(registry)
        self._sink = sink
        self._classifier = classifier or SpecClassifier()
        self._renderer = renderer or ManifestRenderer()

    def create_cluster(self, request: ClusterRequest, context: RequestContext | None = None) -> LifecycleResult:
        """
        Create one cluster, or render it when generate_only is set.

        Steps
        1) validate the request
        2) classify the spec
        3) check the feature gate required by the shape
        4) render the manifest
        5) emit it, or check the name is free and create it
        """

        context = context or RequestContext()
        result = LifecycleResult(outcome=LifecycleOutcome.created())
        self._enter(result, LifecycleState.idle, request.cluster_name)

        try:
            self._validate_request(request)

            self._enter(result, LifecycleState.classifying, request.cluster_name)
            result.shape = self._classifier.classify(request.config_source, request.tkr_version)

            self._enter(result, LifecycleState.gate_checking, request.cluster_name)
            self._guard.decide(result.shape, request.namespace).raise_if_denied()

            self._enter(result, LifecycleState.rendering, request.cluster_name)
            result.manifest = self._renderer.render(result.shape, request)

            if request.generate_only:
                result.mode = ExecutionMode.generate_only
                self._enter(result, LifecycleState.dry_run_emit, request.cluster_name)
                (self._sink or stdout_sink()).emit(result.manifest)
                logger.info(
                    "rendered %s %s in namespace %s without applying",
                    result.manifest.kind,
                    request.cluster_name,
                    request.namespace,
                )
                return result

            result.mode = ExecutionMode.apply
            self._enter(result, LifecycleState.applying, request.cluster_name)
            self._apply(result.manifest, context)
            self._enter(result, LifecycleState.applied, request.cluster_name)

        except OrchestratorError as exc:
            return self._fail(result, LifecycleOutcome.create_failed(str(exc)), exc, request.cluster_name)

        logger.info(
            "created %s %s in namespace %s",
            result.manifest.kind,
            request.cluster_name,
            request.namespace,
        )
        return result

    def delete_cluster(
        self,
        options: DeleteClusterOptions,
        context: RequestContext | None = None,
    ) -> LifecycleResult:
        """
        Delete one cluster.

        This does not classify or gate check anything. A missing cluster is
        reported as DeleteNotFound, exactly as the client raised it.
        """

        context = context or RequestContext()
        result = LifecycleResult(outcome=LifecycleOutcome.deleted())
        self._enter(result, LifecycleState.idle, options.cluster_name)

        try:
            if not options.cluster_name:
                raise InvalidClusterRequest("cluster name must not be empty")
            if not options.namespace:
                raise InvalidClusterRequest("namespace must not be empty")

            self._enter(result, LifecycleState.deleting, options.cluster_name)
            self._call_client(self._client.delete_cluster, options.cluster_name, options.namespace, context)
            self._enter(result, LifecycleState.deleted, options.cluster_name)

        except OrchestratorError as exc:
            return self._fail(result, LifecycleOutcome.delete_failed(str(exc)), exc, options.cluster_name)

        logger.info("deleted cluster %s in namespace %s", options.cluster_name, options.namespace)
        return result

    def _validate_request(self, request: ClusterRequest) -> None:
        name = request.cluster_name
        if not name:
            raise InvalidClusterRequest("cluster name must not be empty")
        if len(name) > _MAX_CLUSTER_NAME or not _CLUSTER_NAME.match(name):
            raise InvalidClusterRequest(
                f"cluster name {name!r} must be a lower case DNS label of at most {_MAX_CLUSTER_NAME} characters"
            )
        if not request.namespace:
            raise InvalidClusterRequest("namespace must not be empty")
        try:
            Plan(request.plan)
        except ValueError as exc:
            raise InvalidClusterRequest(f"unknown plan {request.plan!r}, expected one of: dev, prod") from exc

    def _apply(self, manifest: RenderedManifest, context: RequestContext) -> None:
        exists = self._call_client(self._client.cluster_exists, manifest.name, manifest.namespace, context)
        if exists:
            raise ClusterAlreadyExists(f"cluster {manifest.name} already exists in namespace {manifest.namespace}")
        self._call_client(self._client.create_cluster, manifest, context)

    @staticmethod
    def _call_client(call: Callable[..., Any], *args: Any) -> Any:
        """
        Call the client and keep its errors intact.

        Orchestrator errors pass through. Anything else is a transport failure
        and is wrapped in ClientError with the original as the cause.
        """
        try:
            return call(*args)
        except OrchestratorError:
            raise
        except Exception as exc:
            raise ClientError(str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _enter(result: LifecycleResult, state: LifecycleState, cluster_name: str) -> None:
        result.states.append(state)
        logger.debug("cluster %s entered state %s", cluster_name, state)

    @staticmethod
    def _fail(
        result: LifecycleResult,
        outcome: LifecycleOutcome,
        error: OrchestratorError,
        cluster_name: str,
    ) -> LifecycleResult:
        result.states.append(LifecycleState.failed)
        result.outcome = outcome
        result.error = error
        logger.warning("%s failed for cluster %s: %s", outcome.kind, cluster_name, error)
        return result
