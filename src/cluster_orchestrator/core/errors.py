"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
InvalidSpecShape should block before anything is rendered.
FeatureGateNotActivated should stop and explain which feature blocked the request.
ClientError wraps management plane failures and keeps the cause.
"""

from __future__ import annotations

from cluster_orchestrator.core.constants import ERROR_MSG_FEATURE_GATE_NOT_ACTIVATED


class OrchestratorError(Exception):
    """Base class for all orchestrator exceptions."""


class ConfigError(OrchestratorError):
    """Raised when the orchestrator configuration file is missing or invalid."""


class InvalidSpecShape(OrchestratorError):
    """Raised when a cluster spec is neither a legacy nor a class based spec."""


class InvalidClusterRequest(OrchestratorError):
    """Raised when a request breaks its own invariants, such as an empty name."""


class FeatureGateNotActivated(OrchestratorError):
    """
    Raised when the feature required by a spec shape is not activated.

    The message format is a compatibility contract. Callers match on the
    feature name and namespace substrings.
    """

    def __init__(self, feature: str, namespace: str) -> None:
        self.feature = feature
        self.namespace = namespace
        super().__init__(ERROR_MSG_FEATURE_GATE_NOT_ACTIVATED.format(feature=feature, namespace=namespace))


class ClientError(OrchestratorError):
    """Raised when the management plane client fails."""


class DeleteNotFound(ClientError):
    """Raised when a delete targets a cluster that does not exist."""


class ClusterAlreadyExists(ClientError):
    """Raised when a create targets a name already taken in the namespace."""


class OperationCancelled(ClientError):
    """Raised when the caller cancelled a client call or its timeout expired."""
