#!/usr/bin/env python3
"""
KUBEORDER ORDERED APPLIER - The Quartermaster
---------------------------------------------
Walks a manifest tree in dependency order and submits every eligible
file to the cluster:

  1. the namespace definition file
  2. the declared groups (namespaces, storage, node workloads,
     monitoring, integrations)
  3. every other top-level directory, lexically
  4. loose files at the root

The run is best-effort. A file that fails to apply is recorded and the
walk continues; whether that turns into a non-zero exit is the caller's
decision (see `ApplyReport.failed` and strict mode in the CLI).

Author: KubeOrder Team
Date: 2026-10-17
"""

import logging
from typing import Optional

from kubeorder.core.kubectl import KubectlClient, KubectlResult
from kubeorder.core.models import (
    ApplyOutcome,
    ApplyReport,
    Classification,
    ManifestFile,
    PlaceholderBinding,
)
from kubeorder.source.classifier import KubeClassifier
from kubeorder.source.scanner import ManifestSource
from kubeorder.source.substitution import KubeSubstituter, SubstitutionSkipped

logger = logging.getLogger("kubeorder.applier")


class OrderedApplier:
    """
    Coordinates the Classifier, the Substitution Engine and the kubectl
    client for one apply pass.
    """

    def __init__(self, client: KubectlClient,
                 classifier: Optional[KubeClassifier] = None,
                 substituter: Optional[KubeSubstituter] = None):
        self.client = client
        self.classifier = classifier or KubeClassifier()
        self.substituter = substituter or KubeSubstituter()

    def run(self, source: ManifestSource, binding: PlaceholderBinding) -> ApplyReport:
        report = ApplyReport()

        # --- PHASE 1: NAMESPACE DEFINITION ---
        # Namespaces may already exist, so a missing file is only a warning
        ns_file = source.namespace_file()
        if ns_file is None:
            logger.warning(f"{source.layout.namespace_file} not found; continuing")
        else:
            logger.info(f"Applying namespaces: {ns_file.rel_path}")
            report.add(self.apply_file(ns_file, binding))

        # --- PHASE 2 & 3: DIRECTORY GROUPS ---
        for group in source.ordered_groups():
            logger.info(f"Applying directory: {group.name}/")
            for manifest in group.files:
                report.add(self.apply_file(manifest, binding))

        # --- PHASE 4: LOOSE FILES ---
        for manifest in source.loose_files():
            report.add(self.apply_file(manifest, binding))

        logger.info(
            f"Apply pass complete: {report.applied} applied, {report.failed} failed, "
            f"{report.skipped} skipped, {report.planned} planned"
        )
        return report

    def apply_file(self, manifest: ManifestFile, binding: PlaceholderBinding) -> ApplyOutcome:
        """
        Classifies, optionally substitutes, and submits a single manifest.
        A classification already attached to `manifest` is trusted as is.
        """
        if manifest.read_error is not None:
            return self._skipped(manifest, Classification.SKIP_EMPTY, f"unreadable: {manifest.read_error}")

        if manifest.classification is None:
            manifest = self.classifier.classify_file(manifest)
        classification = manifest.classification

        if classification is Classification.SKIP_EMPTY:
            return self._skipped(manifest, classification, "empty file")

        if classification is Classification.RUNTIME_DUMP:
            return self._skipped(manifest, classification, "runtime dump")

        if classification is Classification.PARAMETERIZED:
            try:
                with self.substituter.resolve(manifest, binding) as concrete:
                    logger.info(
                        f"Applying storage PV with {binding.env_var}={binding.value}: {manifest.rel_path}"
                    )
                    result = self.client.apply(concrete)
            except SubstitutionSkipped as e:
                logger.warning(str(e))
                return self._skipped(manifest, classification, f"{binding.env_var} not set")
            return self._submit(manifest, classification, result)

        logger.info(f"Applying file: {manifest.rel_path}")
        return self._submit(manifest, classification, self.client.apply(manifest.path))

    def _skipped(self, manifest: ManifestFile, classification: Classification, detail: str) -> ApplyOutcome:
        return ApplyOutcome(manifest.rel_path, manifest.group, classification, "skipped", detail)

    def _submit(self, manifest: ManifestFile, classification: Classification,
                result: KubectlResult) -> ApplyOutcome:
        if result.planned:
            return ApplyOutcome(manifest.rel_path, manifest.group, classification, "planned")
        if result.ok:
            return ApplyOutcome(manifest.rel_path, manifest.group, classification, "applied", result.stdout)
        logger.warning(f"Failed to apply {manifest.rel_path}: {result.stderr or f'exit {result.rc}'}")
        return ApplyOutcome(manifest.rel_path, manifest.group, classification, "failed", result.stderr)
