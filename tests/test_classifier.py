"""
KUBEORDER CLASSIFIER SUITE
--------------------------
Verifies triage of manifest files: empty files, runtime dumps, storage
placeholders and plain manifests.
"""

from pathlib import Path

import pytest

from kubeorder.core.config import Layout
from kubeorder.core.models import Classification, ManifestFile
from kubeorder.source.classifier import KubeClassifier

SERVICE = "apiVersion: v1\nkind: Service\nmetadata:\n  name: grafana\nspec:\n  ports:\n  - port: 3000\n"

POD_DUMP = """apiVersion: v1
kind: Pod
metadata:
  name: grafana-7d9f
  namespace: monitoring
  resourceVersion: "48213"
  uid: 3f1c2a9e-0b7d-4c55-9e61-2d7f7b1f0c11
spec:
  containers:
  - name: grafana
    image: grafana/grafana:10.2.0
status:
  hostIP: 192.168.0.103
  phase: Running
"""

LIST_DUMP = """apiVersion: v1
kind: List
items:
- apiVersion: v1
  kind: ConfigMap
  metadata:
    name: cfg
    uid: 0b6e
"""

STORAGE_PV = """apiVersion: v1
kind: PersistentVolume
metadata:
  name: grafana-pv
spec:
  capacity:
    storage: 5Gi
  local:
    path: /mnt/data/grafana
  nodeAffinity:
    required:
      nodeSelectorTerms:
      - matchExpressions:
        - key: kubernetes.io/hostname
          operator: In
          values:
          - WORKER_NODE_NAME
"""


def manifest(content: str, group=None, rel="x.yaml") -> ManifestFile:
    return ManifestFile(path=Path("/tmp") / rel, rel_path=rel, group=group, content=content)


@pytest.fixture
def classifier():
    return KubeClassifier()


@pytest.mark.parametrize("content", ["", "   \n\n", "\n"])
def test_empty_files_are_skipped(classifier, content):
    assert classifier.classify(manifest(content)) is Classification.SKIP_EMPTY


def test_pod_snapshot_is_runtime_dump(classifier):
    assert classifier.classify(manifest(POD_DUMP, group="02-monitoring")) is Classification.RUNTIME_DUMP
    markers = classifier.dump_markers(POD_DUMP)
    assert "status" in markers
    assert "metadata.uid" in markers
    assert "metadata.resourceVersion" in markers


def test_list_snapshot_is_runtime_dump(classifier):
    assert classifier.classify(manifest(LIST_DUMP)) is Classification.RUNTIME_DUMP
    assert "items[].metadata.uid" in classifier.dump_markers(LIST_DUMP)


def test_dump_in_second_document_is_detected(classifier):
    text = SERVICE + "---\n" + POD_DUMP
    assert classifier.classify(manifest(text)) is Classification.RUNTIME_DUMP


def test_marker_words_inside_payload_do_not_trigger(classifier):
    """A ConfigMap whose data mentions `status:` is still a source manifest."""
    text = (
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: probes\ndata:\n"
        "  check.yaml: |\n    status: ok\n    uid: 1000\n"
    )
    assert classifier.classify(manifest(text)) is Classification.PLAIN


def test_unparseable_text_falls_back_to_line_markers(classifier):
    broken = "kind: Pod\nspec: [unclosed\n  resourceVersion: 42\n"
    assert classifier.classify(manifest(broken)) is Classification.RUNTIME_DUMP


def test_unparseable_text_without_markers_is_plain(classifier):
    broken = "kind: Pod\nspec: [unclosed\n  image: nginx\n"
    assert classifier.classify(manifest(broken)) is Classification.PLAIN


@pytest.mark.parametrize("needle", ["WORKER_NODE_NAME", "k8s-worker1", "k8s-worker"])
def test_storage_placeholders_are_parameterized(classifier, needle):
    text = STORAGE_PV.replace("WORKER_NODE_NAME", needle)
    assert classifier.classify(manifest(text, group="05-storage")) is Classification.PARAMETERIZED


def test_placeholder_outside_storage_is_plain(classifier):
    assert classifier.classify(manifest(STORAGE_PV, group="02-monitoring")) is Classification.PLAIN
    assert classifier.classify(manifest(STORAGE_PV, group=None)) is Classification.PLAIN


def test_storage_without_placeholder_is_plain(classifier):
    text = STORAGE_PV.replace("WORKER_NODE_NAME", "node-a")
    assert classifier.classify(manifest(text, group="05-storage")) is Classification.PLAIN


def test_custom_layout_moves_the_storage_group():
    classifier = KubeClassifier(Layout(storage_group="10-volumes", placeholder="NODE_X"))
    text = STORAGE_PV.replace("WORKER_NODE_NAME", "NODE_X")
    assert classifier.classify(manifest(text, group="10-volumes")) is Classification.PARAMETERIZED
    assert classifier.classify(manifest(text, group="05-storage")) is Classification.PLAIN


def test_classify_file_attaches_verdict(classifier):
    classified = classifier.classify_file(manifest(SERVICE))
    assert classified.classification is Classification.PLAIN
    assert classified.content == SERVICE


@pytest.mark.parametrize("field, value, marker", [
    ("creationTimestamp", '"2026-10-17T10:00:00Z"', "metadata.creationTimestamp"),
    ("managedFields", "\n  - manager: kubectl-client-side-apply\n    operation: Update", "metadata.managedFields"),
])
def test_server_populated_metadata_is_runtime_dump(classifier, field, value, marker):
    text = f"apiVersion: v1\nkind: Namespace\nmetadata:\n  name: monitoring\n  {field}: {value}\n"
    assert classifier.classify(manifest(text)) is Classification.RUNTIME_DUMP
    assert marker in classifier.dump_markers(text)


def test_null_creation_timestamp_is_plain(classifier):
    """`kubectl create --dry-run -o yaml` output is a source manifest."""
    text = "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: monitoring\n  creationTimestamp: null\n"
    assert classifier.classify(manifest(text)) is Classification.PLAIN
