"""
Feature gate guard.

Purpose
Convert a spec shape into an authorization decision.

Each shape is tied to exactly one feature:
legacy specs need TKC-API
cluster class based specs need ClusterClass

Both are looked up in the namespace of the request. The guard only reads the
registry; it never creates or changes gates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from cluster_orchestrator.core.constants import CLUSTER_CLASS_FEATURE, TKC_API_FEATURE
from cluster_orchestrator.core.errors import FeatureGateNotActivated
from cluster_orchestrator.core.types import ClassBasedShape, ClusterSpecShape, LegacyShape
from cluster_orchestrator.features.registry import FeatureGateRegistry


@dataclass(frozen=True)
class GateDecision:
    """
    Guard decision.

    feature
    The feature the shape requires.

    namespace
    Where the feature was looked up.

    allowed
    If False, the orchestrator must stop before rendering.
    """

    feature: str
    namespace: str
    allowed: bool

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise FeatureGateNotActivated(self.feature, self.namespace)


def required_feature(shape: ClusterSpecShape) -> str:
    """Return the feature a shape needs."""
    if isinstance(shape, LegacyShape):
        return TKC_API_FEATURE
    if isinstance(shape, ClassBasedShape):
        return CLUSTER_CLASS_FEATURE
    assert_never(shape)


class FeatureGateGuard:
    """Decide whether a shape is allowed in a namespace."""

    def __init__(self, registry: FeatureGateRegistry) -> None:
        self._registry = registry

    def decide(self, shape: ClusterSpecShape, namespace: str) -> GateDecision:
        feature = required_feature(shape)
        allowed = self._registry.is_activated(feature, namespace)
        return GateDecision(feature=feature, namespace=namespace, allowed=allowed)
