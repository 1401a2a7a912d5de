"""
Shared fixtures: a recording stand-in for KubectlClient and a helper that
lays out manifest trees under tmp_path.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from kubeorder.core.kubectl import KubectlError, KubectlResult


class FakeKubectl:
    """
    Mimics the KubectlClient surface used by the applier and the teardown
    coordinator. Listings are served from snapshot queues so tests can
    script how cluster state evolves between polls; the last snapshot of a
    queue repeats forever.
    """

    def __init__(self, *, pods=None, pvcs=None, pvs=None,
                 fail_apply=(), fail_mutations=False, broken_reads=(), dry_run=False):
        self.calls: List[tuple] = []
        self.applied: List[Dict[str, Any]] = []
        self._snapshots = {
            "pods": list(pods) if pods is not None else [[]],
            "pvc": list(pvcs) if pvcs is not None else [[]],
            "pv": list(pvs) if pvs is not None else [[]],
        }
        self.fail_apply = set(fail_apply)
        self.fail_mutations = fail_mutations
        self.broken_reads = set(broken_reads)
        self.dry_run = dry_run

    def _result(self, failed: bool = False) -> KubectlResult:
        if failed or self.fail_mutations:
            return KubectlResult(rc=1, stdout="", stderr="Error from server (NotFound)")
        return KubectlResult(rc=0, stdout="ok", stderr="")

    def list_items(self, kind: str, namespace: Optional[str] = None):
        self.calls.append(("get", kind, namespace))
        if kind in self.broken_reads:
            raise KubectlError(f"kubectl get {kind} failed")
        queue = self._snapshots[kind]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def apply(self, path: Path) -> KubectlResult:
        path = Path(path)
        self.calls.append(("apply", str(path)))
        self.applied.append({"path": path, "content": path.read_text(encoding="utf-8")})
        return self._result(path.name in self.fail_apply)

    def delete(self, kind, name, namespace=None, *, wait=True, force=False):
        self.calls.append(("delete", kind, name, namespace, wait, force))
        return self._result()

    def patch_merge(self, kind, name, patch, namespace=None):
        self.calls.append(("patch-merge", kind, name, namespace, patch))
        return self._result()

    def patch_json(self, kind, name, ops, namespace=None):
        self.calls.append(("patch-json", kind, name, namespace, ops))
        return self._result()

    def mutations(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "get"]


def pod(name: str, phase: str = "Running", terminating: bool = False) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name}
    if terminating:
        metadata["deletionTimestamp"] = "2026-10-17T10:00:00Z"
    return {"metadata": metadata, "status": {"phase": phase}}


def pvc(name: str, volume: str = "") -> Dict[str, Any]:
    spec = {"volumeName": volume} if volume else {}
    return {"metadata": {"name": name}, "spec": spec}


def pv(name: str, claim_ns: str = "", claim: str = "", phase: str = "Bound") -> Dict[str, Any]:
    spec = {"claimRef": {"namespace": claim_ns, "name": claim}} if claim_ns else {}
    return {"metadata": {"name": name}, "spec": spec, "status": {"phase": phase}}


@pytest.fixture
def make_tree(tmp_path):
    """Writes {relative path: content} under tmp_path and returns the root."""

    def _make(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _make
