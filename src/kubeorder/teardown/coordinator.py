#!/usr/bin/env python3
"""
KUBEORDER TEARDOWN COORDINATOR - The Demolition Crew
----------------------------------------------------
Unsticks and removes a namespace whose normal deletion hangs. Each
namespace goes through the same strictly sequential steps:

  ForceTerminate -> DrainWait -> StorageReclaim -> OrphanVolumeUnbind
  -> NamespaceDelete -> VolumeReport

Individual calls are expected to fail (resource already gone, finalizer
already absent), so every mutation is recorded and execution continues.
Live state is re-queried at every step; nothing discovered earlier is
trusted later.

Author: KubeOrder Team
Date: 2026-10-17
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from kubeorder.core.kubectl import KubectlClient, KubectlError, KubectlResult
from kubeorder.core.config import DRAIN_ATTEMPTS, DRAIN_DELAY_S
from kubeorder.core.models import ActionRecord, TeardownReport, VolumeState

logger = logging.getLogger("kubeorder.teardown")

NULL_FINALIZERS = {"metadata": {"finalizers": None}}
NULL_CLAIM_REF = {"spec": {"claimRef": None}}
REMOVE_FINALIZERS = [{"op": "remove", "path": "/metadata/finalizers"}]
REMOVE_CLAIM_REF = [{"op": "remove", "path": "/spec/claimRef"}]


def _name(obj: Dict[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("name") or ""


def is_stuck_pod(pod: Dict[str, Any]) -> bool:
    """A pod is stuck if it is Terminating (deletion requested) or its phase is Unknown."""
    metadata = pod.get("metadata") or {}
    status = pod.get("status") or {}
    return bool(metadata.get("deletionTimestamp")) or status.get("phase") == "Unknown"


class TeardownCoordinator:

    def __init__(self, client: KubectlClient, *, attempts: int = DRAIN_ATTEMPTS,
                 delay_s: float = DRAIN_DELAY_S,
                 sleep: Optional[Callable[[float], None]] = None):
        self.client = client
        self.attempts = attempts
        self.delay_s = delay_s
        self._sleep = sleep or time.sleep

    # --- HELPERS ---

    def _list(self, kind: str, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            return self.client.list_items(kind, namespace)
        except KubectlError as e:
            logger.debug(f"Listing {kind} failed, treating as empty: {e}")
            return []

    def _record(self, report: TeardownReport, desc: str, result: KubectlResult) -> None:
        mode = "plan" if result.planned else "apply"
        report.add_action(ActionRecord(desc=desc, mode=mode, ok=result.ok, rc=result.rc, stderr=result.stderr))
        if not result.ok:
            logger.debug(f"[{report.namespace}] {desc} failed (rc={result.rc}): {result.stderr}")

    # --- STEPS ---

    def force_terminate(self, namespace: str, report: TeardownReport) -> int:
        """Force-deletes Terminating/Unknown pods. Returns how many were targeted."""
        logger.info(f"[{namespace}] Force-deleting pods stuck in Terminating/Unknown (if any)")
        stuck = [_name(p) for p in self._list("pods", namespace) if is_stuck_pod(p)]
        for pod in stuck:
            logger.info(f"[{namespace}] Force delete pod: {pod}")
            self._record(report, f"force delete pod {namespace}/{pod}",
                         self.client.delete("pod", pod, namespace, force=True))
        return len(stuck)

    def drain_wait(self, namespace: str, report: TeardownReport) -> bool:
        """
        Polls the pod count up to `attempts` times. Stops on the first zero
        observation; otherwise sleeps and re-runs ForceTerminate. Never
        blocks beyond the attempt bound. In dry-run nothing was deleted, so
        a single observation is reported without waiting.
        """
        if self.client.dry_run:
            remaining = len(self._list("pods", namespace))
            logger.info(f"[{namespace}] Pods remaining: {remaining} (dry-run, not waiting)")
            return remaining == 0
        for attempt in range(1, self.attempts + 1):
            remaining = len(self._list("pods", namespace))
            if remaining == 0:
                logger.info(f"[{namespace}] No pods remain")
                return True
            logger.info(f"[{namespace}] Pods remaining: {remaining} - re-checking (attempt {attempt}/{self.attempts})")
            self._sleep(self.delay_s)
            self.force_terminate(namespace, report)
        return False

    def _release_volume(self, volume: str, report: TeardownReport) -> None:
        self._record(report, f"remove claimRef pv {volume}",
                     self.client.patch_json("pv", volume, REMOVE_CLAIM_REF))
        self._record(report, f"null claimRef pv {volume}",
                     self.client.patch_merge("pv", volume, NULL_CLAIM_REF))
        self._record(report, f"strip finalizers pv {volume}",
                     self.client.patch_merge("pv", volume, NULL_FINALIZERS))

    def storage_reclaim(self, namespace: str, report: TeardownReport) -> None:
        logger.info(f"[{namespace}] Cleaning PVCs and PVs")
        for pvc in self._list("pvc", namespace):
            claim = _name(pvc)
            if not claim:
                continue
            volume = (pvc.get("spec") or {}).get("volumeName") or ""
            logger.info(f"[{namespace}] PVC: {claim} (PV: {volume or 'none'})")
            self._record(report, f"strip finalizers pvc {namespace}/{claim}",
                         self.client.patch_merge("pvc", claim, NULL_FINALIZERS, namespace))
            self._record(report, f"delete pvc {namespace}/{claim}",
                         self.client.delete("pvc", claim, namespace, wait=False))
            if volume and volume != "<none>":
                logger.info(f"[{namespace}] Unbinding/cleaning PV: {volume}")
                self._release_volume(volume, report)
                self._record(report, f"delete pv {volume}",
                             self.client.delete("pv", volume, wait=False))

        # Claims created or re-finalized while the first pass ran
        logger.info(f"[{namespace}] Force cleaning any remaining PVCs")
        for pvc in self._list("pvc", namespace):
            claim = _name(pvc)
            if not claim:
                continue
            logger.info(f"[{namespace}] Removing finalizers for PVC: {claim}")
            self._record(report, f"remove finalizers pvc {namespace}/{claim}",
                         self.client.patch_json("pvc", claim, REMOVE_FINALIZERS, namespace))
            self._record(report, f"strip finalizers pvc {namespace}/{claim}",
                         self.client.patch_merge("pvc", claim, NULL_FINALIZERS, namespace))
            self._record(report, f"delete pvc {namespace}/{claim}",
                         self.client.delete("pvc", claim, namespace, wait=False))

    def orphan_volume_unbind(self, namespace: str, report: TeardownReport) -> None:
        """Clears claim references on any cluster volume still pointing at `namespace`."""
        logger.info(f"[{namespace}] Making PVs Available that reference this namespace")
        for pv in self._list("pv"):
            ref = (pv.get("spec") or {}).get("claimRef") or {}
            if ref.get("namespace") != namespace:
                continue
            volume = _name(pv)
            logger.info(f"[{namespace}] Unbinding PV: {volume} (was bound to {namespace}/{ref.get('name', '')})")
            self._release_volume(volume, report)

    def namespace_delete(self, namespace: str, report: TeardownReport) -> None:
        logger.info(f"[{namespace}] Deleting namespace")
        self._record(report, f"delete namespace {namespace}",
                     self.client.delete("namespace", namespace, wait=False))
        # Unconditional: a namespace stuck in Terminating never clears on its own
        logger.info(f"[{namespace}] Removing namespace finalizers (if stuck)")
        self._record(report, f"strip finalizers namespace {namespace}",
                     self.client.patch_merge("namespace", namespace, NULL_FINALIZERS))
        self._record(report, f"remove finalizers namespace {namespace}",
                     self.client.patch_json("namespace", namespace, REMOVE_FINALIZERS))

    def volume_report(self, report: TeardownReport) -> None:
        for pv in self._list("pv"):
            spec = pv.get("spec") or {}
            ref = spec.get("claimRef") or {}
            claim = f"{ref.get('namespace')}/{ref.get('name')}" if ref.get("name") else ""
            report.remaining_volumes.append(VolumeState(
                name=_name(pv),
                phase=(pv.get("status") or {}).get("phase") or "Unknown",
                claim=claim,
            ))

    # --- ENTRY POINTS ---

    def teardown(self, namespace: str) -> TeardownReport:
        report = TeardownReport(namespace=namespace)
        logger.info(f"=== Cleaning namespace: {namespace} ===")
        self.force_terminate(namespace, report)
        report.drained = self.drain_wait(namespace, report)
        if not report.drained:
            logger.warning(f"[{namespace}] Pods still present after {self.attempts} attempts; continuing")
        self.storage_reclaim(namespace, report)
        self.orphan_volume_unbind(namespace, report)
        self.namespace_delete(namespace, report)
        self.volume_report(report)
        logger.info(f"[{namespace}] Done.")
        return report

    def teardown_all(self, namespaces: List[str]) -> List[TeardownReport]:
        """Processes each namespace to completion before starting the next."""
        return [self.teardown(ns) for ns in namespaces]
