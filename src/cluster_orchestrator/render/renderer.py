"""
Manifest renderer.

Purpose
Turn a classified shape plus the request into the manifest that is either
printed (dry run) or sent to the management plane (apply).

Determinism
render is a pure function of (shape, request, defaults). Key order is fixed by
construction and the YAML dump preserves it, so the same input always yields
byte identical text.

Plan handling
The plan only picks replica counts. kind, name and namespace come from the
shape and the request and never depend on the plan.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, assert_never

from cluster_orchestrator.core.constants import CLUSTER_API_VERSION, CLUSTER_KIND, TKC_API_VERSION, TKC_KIND
from cluster_orchestrator.core.errors import InvalidClusterRequest, InvalidSpecShape
from cluster_orchestrator.core.serialization import dump_yaml
from cluster_orchestrator.core.types import (
    ClassBasedShape,
    ClusterRequest,
    ClusterSpecShape,
    LegacyShape,
    Plan,
    RenderedManifest,
)


@dataclass(frozen=True)
class PlanProfile:
    """Replica counts for one plan."""

    control_plane_replicas: int
    worker_replicas: int


DEFAULT_PLAN_PROFILES: Mapping[Plan, PlanProfile] = {
    Plan.dev: PlanProfile(control_plane_replicas=1, worker_replicas=1),
    Plan.prod: PlanProfile(control_plane_replicas=3, worker_replicas=3),
}


@dataclass(frozen=True)
class RenderDefaults:
    """
    Defaults used when the spec leaves a field out.

    storage_class
    Left out of the manifest when empty, so the namespace default applies.

    worker_class
    Machine deployment class used for class based clusters without workers.
    """

    control_plane_vm_class: str = "best-effort-small"
    worker_vm_class: str = "best-effort-small"
    storage_class: str = ""
    node_pool_name: str = "workers"
    worker_class: str = "node-pool"
    plan_profiles: Mapping[Plan, PlanProfile] = field(default_factory=lambda: dict(DEFAULT_PLAN_PROFILES))


def tkr_name_from_version(version: str) -> str:
    """
    Convert a runtime version to a TKR object name.

    Object names cannot hold '+', so v1.21.2+vmware.1-tkg.1 becomes
    v1.21.2---vmware.1-tkg.1.
    """
    return version.replace("+", "---")


class ManifestRenderer:
    """Render shapes into manifests."""

    def __init__(self, defaults: RenderDefaults | None = None) -> None:
        self._defaults = defaults or RenderDefaults()

    def render(self, shape: ClusterSpecShape, request: ClusterRequest) -> RenderedManifest:
        profile = self._profile(request.plan)

        if isinstance(shape, LegacyShape):
            kind = TKC_KIND
            body = self._render_legacy(shape, request, profile)
        elif isinstance(shape, ClassBasedShape):
            kind = CLUSTER_KIND
            body = self._render_class_based(shape, request, profile)
        else:
            assert_never(shape)

        return RenderedManifest(
            kind=kind,
            name=request.cluster_name,
            namespace=request.namespace,
            body=body,
            text=dump_yaml(body),
        )

    def _profile(self, plan: Plan) -> PlanProfile:
        try:
            profile = self._defaults.plan_profiles.get(Plan(plan))
        except ValueError as exc:
            raise InvalidClusterRequest(f"unknown plan {plan!r}, expected one of: dev, prod") from exc
        if profile is None:
            raise InvalidClusterRequest(f"no topology profile for plan {plan}")
        return profile

    def _render_legacy(
        self,
        shape: LegacyShape,
        request: ClusterRequest,
        profile: PlanProfile,
    ) -> dict[str, Any]:
        variables = shape.variables
        tkr = {"reference": {"name": tkr_name_from_version(shape.runtime_version)}}
        storage_class = str(variables.get("STORAGE_CLASS") or self._defaults.storage_class)

        control_plane: dict[str, Any] = {
            "replicas": profile.control_plane_replicas,
            "vmClass": str(variables.get("CONTROL_PLANE_VM_CLASS") or self._defaults.control_plane_vm_class),
        }
        if storage_class:
            control_plane["storageClass"] = storage_class
        control_plane["tkr"] = tkr

        node_pool: dict[str, Any] = {
            "name": self._defaults.node_pool_name,
            "replicas": _worker_count(variables, profile.worker_replicas),
            "vmClass": str(variables.get("WORKER_VM_CLASS") or self._defaults.worker_vm_class),
        }
        if storage_class:
            node_pool["storageClass"] = storage_class
        node_pool["tkr"] = copy.deepcopy(tkr)

        spec: dict[str, Any] = {
            "topology": {
                "controlPlane": control_plane,
                "nodePools": [node_pool],
            }
        }

        network: dict[str, Any] = {}
        if variables.get("SERVICE_CIDR"):
            network["services"] = {"cidrBlocks": [str(variables["SERVICE_CIDR"])]}
        if variables.get("CLUSTER_CIDR"):
            network["pods"] = {"cidrBlocks": [str(variables["CLUSTER_CIDR"])]}
        if network:
            spec["settings"] = {"network": network}

        return {
            "apiVersion": TKC_API_VERSION,
            "kind": TKC_KIND,
            "metadata": {"name": request.cluster_name, "namespace": request.namespace},
            "spec": spec,
        }

    def _render_class_based(
        self,
        shape: ClassBasedShape,
        request: ClusterRequest,
        profile: PlanProfile,
    ) -> dict[str, Any]:
        overrides = copy.deepcopy(dict(shape.topology))

        topology: dict[str, Any] = {"class": shape.cluster_class_ref}
        if overrides.get("version"):
            topology["version"] = str(overrides["version"])

        control_plane = _section(overrides, "controlPlane")
        control_plane.setdefault("replicas", profile.control_plane_replicas)
        topology["controlPlane"] = control_plane

        workers = _section(overrides, "workers")
        deployments = workers.get("machineDeployments") or [
            {"class": self._defaults.worker_class, "name": "md-0"}
        ]
        if not isinstance(deployments, list):
            raise InvalidSpecShape("spec.topology.workers.machineDeployments must be a list")
        rendered_deployments: list[dict[str, Any]] = []
        for idx, raw in enumerate(deployments):
            if not isinstance(raw, dict):
                raise InvalidSpecShape(f"spec.topology.workers.machineDeployments item {idx} must be a mapping")
            deployment = dict(raw)
            deployment.setdefault("replicas", profile.worker_replicas)
            rendered_deployments.append(deployment)
        workers["machineDeployments"] = rendered_deployments
        topology["workers"] = workers

        if overrides.get("variables"):
            topology["variables"] = overrides["variables"]

        return {
            "apiVersion": CLUSTER_API_VERSION,
            "kind": CLUSTER_KIND,
            "metadata": {"name": request.cluster_name, "namespace": request.namespace},
            "spec": {"topology": topology},
        }


def _section(overrides: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = overrides.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidSpecShape(f"spec.topology.{key} must be a mapping")
    return dict(value)


def _worker_count(variables: Mapping[str, Any], default: int) -> int:
    raw = variables.get("WORKER_MACHINE_COUNT")
    if raw is None or raw == "":
        return default
    try:
        count = int(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidSpecShape(f"WORKER_MACHINE_COUNT must be an integer, got {raw!r}") from exc
    if count < 0:
        raise InvalidSpecShape("WORKER_MACHINE_COUNT must not be negative")
    return count
