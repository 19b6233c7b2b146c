"""
Capability sources.

Goal
Provide pluggable feature gate ingestion so the registry is source agnostic.

StaticCapabilitySource reads a local YAML or JSON file. It is useful for dev,
tests and air gapped demos. The Kubernetes API backed source lives in
client/kube.py and reuses gates_from_feature_gate_objects below.

Schema example, list form
{
  "featureGates": [
    {"name": "TKC-API", "namespace": "default", "activated": true}
  ]
}

Schema example, namespace form
{
  "default": {"TKC-API": true, "ClusterClass": false}
}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Protocol

import yaml

from cluster_orchestrator.core.errors import ConfigError
from cluster_orchestrator.core.types import FeatureGate


class CapabilitySource(Protocol):
    """
    Capability source interface.

    list_feature_gates returns every known gate. Gates missing from the list
    are treated as not activated by the registry.
    """

    def list_feature_gates(self) -> list[FeatureGate]:
        """List feature gates advertised by the management plane."""


def _gate_from_dict(obj: dict[str, Any]) -> FeatureGate:
    name = obj.get("name")
    namespace = obj.get("namespace")
    if not isinstance(name, str) or not name:
        raise ConfigError("feature gate entry is missing a name")
    if not isinstance(namespace, str) or not namespace:
        raise ConfigError(f"feature gate {name} is missing a namespace")
    return FeatureGate(name=name, namespace=namespace, activated=obj.get("activated") is True)


def gates_from_document(data: Any) -> list[FeatureGate]:
    """Convert a parsed feature gate document in either schema form into gates."""
    if data is None:
        return []

    if not isinstance(data, dict):
        raise ConfigError("feature gate document must be a mapping")

    if "featureGates" in data:
        raw = data.get("featureGates") or []
        if not isinstance(raw, list):
            raise ConfigError("featureGates must be a list")
        return [_gate_from_dict(x) for x in raw if isinstance(x, dict)]

    gates: list[FeatureGate] = []
    for namespace, features in data.items():
        if not isinstance(features, dict):
            raise ConfigError(f"features for namespace {namespace} must be a mapping")
        for name, activated in features.items():
            gates.append(FeatureGate(name=str(name), namespace=str(namespace), activated=activated is True))
    return gates


def gates_from_feature_gate_objects(items: Iterable[dict[str, Any]]) -> list[FeatureGate]:
    """
    Convert FeatureGate custom resources into gates.

    Each object lists the namespaces it applies to and which features are
    activated or deactivated there. Unavailable features are left out so they
    resolve to not activated.
    """
    gates: list[FeatureGate] = []
    for item in items:
        status = item.get("status", {}) or {}
        namespaces = [str(ns) for ns in status.get("namespaces", []) or []]
        activated = [str(f) for f in status.get("activatedFeatures", []) or []]
        deactivated = [str(f) for f in status.get("deactivatedFeatures", []) or []]

        for namespace in namespaces:
            for name in activated:
                gates.append(FeatureGate(name=name, namespace=namespace, activated=True))
            for name in deactivated:
                gates.append(FeatureGate(name=name, namespace=namespace, activated=False))
    return gates


@dataclass(frozen=True)
class StaticCapabilitySource(CapabilitySource):
    """Load feature gates from a local YAML or JSON file."""

    path: Path

    def list_feature_gates(self) -> list[FeatureGate]:
        path = Path(self.path)
        if not path.exists():
            raise ConfigError(f"feature gate file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid feature gate file {path}: {exc}") from exc
        return gates_from_document(data)


@dataclass(frozen=True)
class InlineCapabilitySource(CapabilitySource):
    """Serve a fixed list of gates, mostly for tests and simulations."""

    gates: tuple[FeatureGate, ...] = ()

    def list_feature_gates(self) -> list[FeatureGate]:
        return list(self.gates)
