"""
Core types.

This file defines the shared data structures used across the orchestrator.

Important design choice
A spec shape is a closed union of LegacyShape and ClassBasedShape.
The guard and the renderer branch on it exhaustively, so a new shape has to be
handled at both places before it type checks.

Ownership
A ClusterRequest belongs to the caller for the duration of one lifecycle call.
The orchestrator never keeps it afterwards.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping, Union


class Plan(StrEnum):
    """
    Named topology profile.

    dev
      Single control plane node and a single worker.

    prod
      Highly available control plane and three workers.
    """

    dev = "dev"
    prod = "prod"


ConfigSource = Union[bytes, str, Mapping[str, Any]]


@dataclass(frozen=True)
class ClusterRequest:
    """
    A request to create one workload cluster.

    config_source is the raw spec as bytes or text, or already parsed fields.

    tkr_version overrides the runtime version found in a legacy spec.
    """

    config_source: ConfigSource
    cluster_name: str
    namespace: str = "default"
    plan: Plan = Plan.dev
    generate_only: bool = False
    tkr_version: str = ""


@dataclass(frozen=True)
class DeleteClusterOptions:
    """A delete request names only the cluster and its namespace."""

    cluster_name: str
    namespace: str = "default"


@dataclass(frozen=True)
class LegacyShape:
    """
    Self contained cluster spec with an explicit runtime version.

    variables carries the remaining flat settings of the spec, such as vm class
    and storage class, with upper case keys.
    """

    runtime_version: str
    variables: Mapping[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ClassBasedShape:
    """
    Spec that references a reusable cluster class.

    cluster_name and namespace come from the spec metadata when present.
    topology holds the per instance overrides found under spec.topology.
    """

    cluster_class_ref: str
    cluster_name: str = ""
    namespace: str = ""
    topology: Mapping[str, Any] = field(default_factory=dict, compare=False)


ClusterSpecShape = Union[LegacyShape, ClassBasedShape]


@dataclass(frozen=True)
class FeatureGate:
    """Activation state of one feature in one namespace."""

    name: str
    namespace: str
    activated: bool


@dataclass(frozen=True)
class RenderedManifest:
    """
    Manifest produced for one request.

    body keeps insertion order so the rendered text is stable.
    text is the YAML form written to the output sink or sent to the client.
    """

    kind: str
    name: str
    namespace: str
    body: Mapping[str, Any] = field(compare=False)
    text: str


class OutcomeKind(StrEnum):
    created = "created"
    create_failed = "create_failed"
    deleted = "deleted"
    delete_failed = "delete_failed"


@dataclass(frozen=True)
class LifecycleOutcome:
    """
    Outcome of one lifecycle phase.

    reason is empty for successful outcomes and holds the error text otherwise.
    """

    kind: OutcomeKind
    reason: str = ""

    @classmethod
    def created(cls) -> LifecycleOutcome:
        return cls(OutcomeKind.created)

    @classmethod
    def create_failed(cls, reason: str) -> LifecycleOutcome:
        return cls(OutcomeKind.create_failed, reason)

    @classmethod
    def deleted(cls) -> LifecycleOutcome:
        return cls(OutcomeKind.deleted)

    @classmethod
    def delete_failed(cls, reason: str) -> LifecycleOutcome:
        return cls(OutcomeKind.delete_failed, reason)


@dataclass(frozen=True)
class RequestContext:
    """
    Caller owned call context.

    timeout_seconds
    Passed to the client as is. The orchestrator never adds its own timeout.

    cancel
    Set by the caller to abandon an in flight client call.
    """

    timeout_seconds: float | None = None
    cancel: threading.Event = field(default_factory=threading.Event, compare=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()
