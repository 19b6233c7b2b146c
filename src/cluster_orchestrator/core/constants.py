"""
Shared constants.

Feature names, object kinds and API groups used by the classifier, the guard
and the renderer.
"""

TKC_API_FEATURE = "TKC-API"
CLUSTER_CLASS_FEATURE = "ClusterClass"

ERROR_MSG_FEATURE_GATE_NOT_ACTIVATED = (
    "vSphere with Tanzu environment detected, however, the feature '{feature}' "
    "is not activated in '{namespace}' namespace"
)

TKC_KIND = "TanzuKubernetesCluster"
TKC_API_GROUP = "run.tanzu.vmware.com"
TKC_API_VERSION = "run.tanzu.vmware.com/v1alpha2"
TKC_PLURAL = "tanzukubernetesclusters"

CLUSTER_KIND = "Cluster"
CLUSTER_API_GROUP = "cluster.x-k8s.io"
CLUSTER_API_VERSION = "cluster.x-k8s.io/v1beta1"
CLUSTER_PLURAL = "clusters"

FEATURE_GATE_GROUP = "config.tanzu.vmware.com"
FEATURE_GATE_VERSION = "v1alpha1"
FEATURE_GATE_PLURAL = "featuregates"
FEATURE_GATE_RESOURCE = f"{FEATURE_GATE_PLURAL}.{FEATURE_GATE_GROUP}"

DEFAULT_NAMESPACE = "default"
