"""
Feature gate registry.

We keep an immutable table keyed by feature name and namespace as the
normalized view of the management plane capabilities.

Read path
is_activated reads the current table reference once and never takes a lock.
A table is never changed after it is built.

Write path
refresh builds a brand new table from a capability source and swaps the
reference under a writer lock. Readers see either the old table or the new
one, never a partial update.

Fail closed
Unknown feature and namespace pairs are reported as not activated.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Iterable, Mapping

from cluster_orchestrator.core.types import FeatureGate
from cluster_orchestrator.features.sources import CapabilitySource

logger = logging.getLogger(__name__)

GateKey = tuple[str, str]


def _build_table(gates: Iterable[FeatureGate]) -> Mapping[GateKey, bool]:
    table: dict[GateKey, bool] = {}
    for gate in gates:
        table[(gate.name, gate.namespace)] = bool(gate.activated)
    return MappingProxyType(table)


class FeatureGateRegistry:
    """Process wide feature gate lookup keyed by (feature, namespace)."""

    def __init__(self, gates: Iterable[FeatureGate] = ()) -> None:
        self._table = _build_table(gates)
        self._write_lock = threading.Lock()

    @classmethod
    def from_source(cls, source: CapabilitySource) -> FeatureGateRegistry:
        """Build a registry from a capability source."""
        return cls(source.list_feature_gates())

    def is_activated(self, feature: str, namespace: str) -> bool:
        """Return True only when the feature is known and activated in the namespace."""
        table = self._table
        return table.get((feature, namespace), False)

    def refresh(self, source: CapabilitySource) -> None:
        """
        Reload gates from a source and swap the whole table.

        If the source raises, the current table stays in place.
        """
        gates = source.list_feature_gates()
        table = _build_table(gates)
        with self._write_lock:
            self._table = table
        logger.info("feature gate table refreshed with %d entries", len(table))

    def snapshot(self) -> list[FeatureGate]:
        """Return the current gates sorted by namespace then feature."""
        table = self._table
        return [
            FeatureGate(name=name, namespace=namespace, activated=activated)
            for (name, namespace), activated in sorted(table.items(), key=lambda kv: (kv[0][1], kv[0][0]))
        ]

    def __len__(self) -> int:
        return len(self._table)
