"""
Spec classifier.

Purpose
Decide which shape a cluster spec has before anything else looks at it.

Accepted inputs
1  A legacy flat variable file
   Upper case keys such as CLUSTER_NAME, CLUSTER_PLAN and KUBERNETES_VERSION.
   TKR_VERSION is accepted as an alias of KUBERNETES_VERSION.

2  A legacy TanzuKubernetesCluster object
   The runtime version is read from spec.distribution, or from the tkr
   reference of the control plane.

3  A cluster class based Cluster object
   Any cluster.x-k8s.io apiVersion with a non empty spec.topology.class.
   Multi document YAML is fine as long as exactly one document is a cluster.

Everything else raises InvalidSpecShape. The classifier has no side effects and
the same input always produces the same shape.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

import yaml

from cluster_orchestrator.core.constants import CLUSTER_API_GROUP, CLUSTER_KIND, TKC_KIND
from cluster_orchestrator.core.errors import InvalidSpecShape
from cluster_orchestrator.core.types import ClassBasedShape, ClusterSpecShape, ConfigSource, LegacyShape

_VARIABLE_KEY = re.compile(r"^[A-Z][A-Z0-9_]*$")
_VERSION_KEYS = ("KUBERNETES_VERSION", "TKR_VERSION")


class SpecClassifier:
    """Classify cluster specs into LegacyShape or ClassBasedShape."""

    def classify(self, source: ConfigSource, runtime_version: str = "") -> ClusterSpecShape:
        """
        Classify a spec.

        runtime_version, when given, replaces the version of a legacy spec and
        allows a legacy spec that carries none. It is ignored for class based specs.
        """

        documents = self._load_documents(source)

        shapes: list[ClusterSpecShape] = []
        kinds_seen: list[str] = []
        for idx, doc in enumerate(documents):
            if not isinstance(doc, dict):
                raise InvalidSpecShape(f"spec document {idx} must be a mapping")
            kinds_seen.append(str(doc.get("kind", "<variables>")))
            shape = self._classify_document(doc, runtime_version)
            if shape is not None:
                shapes.append(shape)

        if not shapes:
            seen = ", ".join(kinds_seen)
            raise InvalidSpecShape(
                f"spec is neither a legacy cluster spec nor a cluster class based spec (found: {seen})"
            )

        if len(shapes) > 1:
            raise InvalidSpecShape(f"spec defines {len(shapes)} clusters, expected exactly one")

        return shapes[0]

    def _load_documents(self, source: ConfigSource) -> list[Any]:
        if isinstance(source, Mapping):
            return [dict(source)]

        if isinstance(source, bytes):
            try:
                text = source.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise InvalidSpecShape("spec is not valid utf-8 text") from exc
        else:
            text = source

        try:
            documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as exc:
            raise InvalidSpecShape(f"spec is not valid YAML: {exc}") from exc

        if not documents:
            raise InvalidSpecShape("spec is empty")

        return documents

    def _classify_document(self, doc: dict[str, Any], runtime_version: str) -> ClusterSpecShape | None:
        kind = doc.get("kind")

        if kind == TKC_KIND:
            return self._legacy_from_tkc(doc, runtime_version)

        if kind == CLUSTER_KIND and str(doc.get("apiVersion", "")).startswith(f"{CLUSTER_API_GROUP}/"):
            return self._class_based_from_cluster(doc)

        if kind is None and self._is_variable_file(doc):
            return self._legacy_from_variables(doc, runtime_version)

        return None

    def _is_variable_file(self, doc: dict[str, Any]) -> bool:
        return bool(doc) and all(isinstance(k, str) and _VARIABLE_KEY.match(k) for k in doc)

    def _legacy_from_variables(self, doc: dict[str, Any], runtime_version: str) -> LegacyShape:
        version = runtime_version
        if not version:
            for key in _VERSION_KEYS:
                version = _version(doc.get(key), key)
                if version:
                    break

        if not version:
            raise InvalidSpecShape("legacy cluster config must set KUBERNETES_VERSION")

        variables = {k: v for k, v in doc.items() if k not in _VERSION_KEYS and v is not None and v != ""}
        return LegacyShape(runtime_version=version, variables=variables)

    def _legacy_from_tkc(self, doc: dict[str, Any], runtime_version: str) -> LegacyShape:
        metadata = _mapping(doc.get("metadata"), "metadata")
        spec = _mapping(doc.get("spec"), "spec")
        distribution = _mapping(spec.get("distribution"), "spec.distribution")
        topology = _mapping(spec.get("topology"), "spec.topology")
        control_plane = _mapping(topology.get("controlPlane"), "spec.topology.controlPlane")
        tkr = _mapping(control_plane.get("tkr"), "spec.topology.controlPlane.tkr")
        tkr_ref = _mapping(tkr.get("reference"), "spec.topology.controlPlane.tkr.reference")

        version = (
            runtime_version
            or _version(distribution.get("fullVersion"), "spec.distribution.fullVersion")
            or _version(distribution.get("version"), "spec.distribution.version")
            or _version(tkr_ref.get("name"), "spec.topology.controlPlane.tkr.reference.name")
        )
        if not version:
            raise InvalidSpecShape(f"{TKC_KIND} spec must set a runtime version")

        variables: dict[str, Any] = {}
        _set_if(variables, "CLUSTER_NAME", metadata.get("name"))
        _set_if(variables, "NAMESPACE", metadata.get("namespace"))
        _set_if(variables, "CONTROL_PLANE_VM_CLASS", control_plane.get("vmClass"))
        _set_if(variables, "STORAGE_CLASS", control_plane.get("storageClass"))

        node_pools = topology.get("nodePools") or []
        if isinstance(node_pools, list) and node_pools and isinstance(node_pools[0], dict):
            pool = node_pools[0]
            _set_if(variables, "WORKER_VM_CLASS", pool.get("vmClass"))
            _set_if(variables, "WORKER_MACHINE_COUNT", pool.get("replicas"))

        return LegacyShape(runtime_version=version, variables=variables)

    def _class_based_from_cluster(self, doc: dict[str, Any]) -> ClassBasedShape:
        metadata = _mapping(doc.get("metadata"), "metadata")
        spec = _mapping(doc.get("spec"), "spec")
        topology = _mapping(spec.get("topology"), "spec.topology")

        class_ref = topology.get("class")
        if not isinstance(class_ref, str) or not class_ref:
            raise InvalidSpecShape(f"{CLUSTER_KIND} spec must set spec.topology.class")
        _mapping(topology.get("controlPlane"), "spec.topology.controlPlane")
        workers = _mapping(topology.get("workers"), "spec.topology.workers")
        deployments = workers.get("machineDeployments")
        if deployments is not None and not isinstance(deployments, list):
            raise InvalidSpecShape("spec.topology.workers.machineDeployments must be a list")

        return ClassBasedShape(
            cluster_class_ref=class_ref,
            cluster_name=str(metadata.get("name", "") or ""),
            namespace=str(metadata.get("namespace", "") or ""),
            topology=dict(topology),
        )


def _mapping(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidSpecShape(f"{name} must be a mapping")
    return value


def _version(value: Any, name: str) -> str:
    if value is None or value == "":
        return ""
    if not isinstance(value, str):
        raise InvalidSpecShape(f"{name} must be a quoted string, got {value!r}")
    return value


def _set_if(target: dict[str, Any], key: str, value: Any) -> None:
    if value is not None and value != "":
        target[key] = value
