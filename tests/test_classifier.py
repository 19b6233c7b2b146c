import pytest

from cluster_orchestrator.core.errors import InvalidSpecShape
from cluster_orchestrator.core.types import ClassBasedShape, LegacyShape
from cluster_orchestrator.spec.classifier import SpecClassifier

LEGACY_VARIABLES = b"""
CLUSTER_NAME: tkc-e2e-ab12
NAMESPACE: default
CLUSTER_PLAN: dev
KUBERNETES_VERSION: v1.21.2+vmware.1-tkg.1
CONTROL_PLANE_VM_CLASS: best-effort-small
WORKER_VM_CLASS: best-effort-medium
STORAGE_CLASS: vsan-default
"""

CLUSTER_CLASS_SPEC = b"""
apiVersion: v1
kind: Secret
metadata:
  name: creds
---
apiVersion: cluster.x-k8s.io/v1beta1
kind: Cluster
metadata:
  name: cc-e2e-01
  namespace: ns1
spec:
  topology:
    class: tanzukubernetescluster
    version: v1.23.8+vmware.2-tkg.2-zshippable
    controlPlane:
      replicas: 1
"""


def test_legacy_variable_file_is_classified_with_runtime_version():
    shape = SpecClassifier().classify(LEGACY_VARIABLES)

    assert isinstance(shape, LegacyShape)
    assert shape.runtime_version == "v1.21.2+vmware.1-tkg.1"
    assert shape.variables["CLUSTER_NAME"] == "tkc-e2e-ab12"
    assert "KUBERNETES_VERSION" not in shape.variables


def test_legacy_runtime_version_override_wins():
    shape = SpecClassifier().classify(LEGACY_VARIABLES, runtime_version="v1.22.9+vmware.1-tkg.1")

    assert isinstance(shape, LegacyShape)
    assert shape.runtime_version == "v1.22.9+vmware.1-tkg.1"


def test_legacy_variable_file_without_version_needs_override():
    source = {"CLUSTER_NAME": "tkc1", "CLUSTER_PLAN": "dev"}

    with pytest.raises(InvalidSpecShape, match="KUBERNETES_VERSION"):
        SpecClassifier().classify(source)

    shape = SpecClassifier().classify(source, runtime_version="v1.21.2")
    assert shape == LegacyShape(runtime_version="v1.21.2")


def test_tkc_object_is_legacy_and_exposes_settings():
    source = """
apiVersion: run.tanzu.vmware.com/v1alpha2
kind: TanzuKubernetesCluster
metadata:
  name: tkc1
  namespace: team-a
spec:
  distribution:
    fullVersion: v1.21.6+vmware.1-tkg.1
  topology:
    controlPlane:
      vmClass: guaranteed-small
      storageClass: gold
    nodePools:
    - name: workers
      replicas: 4
      vmClass: guaranteed-large
"""
    shape = SpecClassifier().classify(source)

    assert isinstance(shape, LegacyShape)
    assert shape.runtime_version == "v1.21.6+vmware.1-tkg.1"
    assert shape.variables == {
        "CLUSTER_NAME": "tkc1",
        "NAMESPACE": "team-a",
        "CONTROL_PLANE_VM_CLASS": "guaranteed-small",
        "STORAGE_CLASS": "gold",
        "WORKER_VM_CLASS": "guaranteed-large",
        "WORKER_MACHINE_COUNT": 4,
    }


def test_cluster_class_spec_is_class_based_and_ignores_other_documents():
    shape = SpecClassifier().classify(CLUSTER_CLASS_SPEC)

    assert isinstance(shape, ClassBasedShape)
    assert shape.cluster_class_ref == "tanzukubernetescluster"
    assert shape.cluster_name == "cc-e2e-01"
    assert shape.namespace == "ns1"
    assert shape.topology["version"] == "v1.23.8+vmware.2-tkg.2-zshippable"


def test_classification_is_deterministic():
    classifier = SpecClassifier()

    assert classifier.classify(CLUSTER_CLASS_SPEC) == classifier.classify(CLUSTER_CLASS_SPEC)
    assert classifier.classify(LEGACY_VARIABLES) == classifier.classify(LEGACY_VARIABLES)


@pytest.mark.parametrize(
    "source",
    [
        b"",
        b"just a string",
        b"- a\n- list\n",
        b"key: [unclosed",
        b"apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: x\n",
        b"apiVersion: cluster.x-k8s.io/v1beta1\nkind: Cluster\nmetadata:\n  name: x\nspec: {}\n",
        b"lower_case_key: value\n",
    ],
)
def test_unrecognized_specs_raise_invalid_spec_shape(source):
    with pytest.raises(InvalidSpecShape):
        SpecClassifier().classify(source)


def test_two_cluster_documents_are_rejected():
    doubled = CLUSTER_CLASS_SPEC + b"---\n" + CLUSTER_CLASS_SPEC.split(b"---\n")[1]

    with pytest.raises(InvalidSpecShape, match="expected exactly one"):
        SpecClassifier().classify(doubled)


def test_unquoted_numeric_version_is_rejected():
    with pytest.raises(InvalidSpecShape, match="quoted string"):
        SpecClassifier().classify(b"CLUSTER_NAME: tkc1\nKUBERNETES_VERSION: 1.20\n")

    shape = SpecClassifier().classify(b"CLUSTER_NAME: tkc1\nKUBERNETES_VERSION: '1.20'\n")
    assert shape.runtime_version == "1.20"


def test_empty_variables_are_dropped():
    shape = SpecClassifier().classify(
        b"KUBERNETES_VERSION: v1.21.2\nCONTROL_PLANE_VM_CLASS:\nWORKER_VM_CLASS: ~\nSTORAGE_CLASS: ''\n"
    )

    assert shape.variables == {}


@pytest.mark.parametrize(
    "topology",
    [
        b"    controlPlane: 3\n",
        b"    workers: [md-0]\n",
        b"    workers:\n      machineDeployments: md-0\n",
    ],
)
def test_non_mapping_topology_sections_are_rejected(topology):
    source = (
        b"apiVersion: cluster.x-k8s.io/v1beta1\nkind: Cluster\nmetadata:\n  name: cc1\n"
        b"spec:\n  topology:\n    class: tanzukubernetescluster\n" + topology
    )

    with pytest.raises(InvalidSpecShape, match="spec.topology"):
        SpecClassifier().classify(source)
