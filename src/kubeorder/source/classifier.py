#!/usr/bin/env python3
"""
KUBEORDER CLASSIFIER - The Triage Desk
--------------------------------------
Decides what the Applier may do with a single manifest file:

  skip-empty     -> nothing to apply
  runtime-dump   -> a `kubectl get -o yaml` snapshot; never reapplied
  parameterized  -> storage manifest carrying the node placeholder
  plain          -> applied verbatim

Dump detection inspects the parsed documents rather than grepping raw
text, so a ConfigMap whose payload merely contains the word `status:`
is not mistaken for a snapshot. Text that does not parse as YAML falls
back to the line-anchored marker pattern.

Author: KubeOrder Team
Date: 2026-10-17
"""

import logging
import re
from dataclasses import replace
from typing import Any, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kubeorder.core.config import Layout
from kubeorder.core.models import Classification, ManifestFile

logger = logging.getLogger("kubeorder.classifier")

# Server-assigned fields that only a live object carries
DUMP_MARKERS = ("resourceVersion", "uid", "status", "hostIP", "containerStatuses", "ownerReferences")
METADATA_MARKERS = ("resourceVersion", "uid", "ownerReferences", "managedFields", "creationTimestamp")

DUMP_PATTERN = re.compile(
    r"^\s*(resourceVersion:|uid:|status:|hostIP:|containerStatuses:|ownerReferences:)",
    re.MULTILINE,
)


class KubeClassifier:
    """
    Stateless classifier. One instance can be shared across a whole run.
    """

    def __init__(self, layout: Optional[Layout] = None):
        self.layout = layout or Layout()
        self.yaml = YAML(typ="safe")

    def classify(self, manifest: ManifestFile) -> Classification:
        text = manifest.content
        if not text or not text.strip():
            return Classification.SKIP_EMPTY

        markers = self.dump_markers(text)
        if markers:
            logger.info(f"[SKIP] Runtime dump detected ({', '.join(markers)}), skipping: {manifest.rel_path}")
            return Classification.RUNTIME_DUMP

        if manifest.group == self.layout.storage_group and self.has_placeholder(text):
            return Classification.PARAMETERIZED

        return Classification.PLAIN

    def classify_file(self, manifest: ManifestFile) -> ManifestFile:
        """Returns a copy of `manifest` with its classification attached."""
        return replace(manifest, classification=self.classify(manifest))

    def has_placeholder(self, text: str) -> bool:
        needles = (self.layout.placeholder, *self.layout.example_hostnames)
        return any(n in text for n in needles)

    def dump_markers(self, text: str) -> List[str]:
        """
        Names of the runtime markers found in `text`; empty for a source
        manifest.
        """
        try:
            docs = [d for d in self.yaml.load_all(text) if d is not None]
        except YAMLError:
            return sorted({m.rstrip(":") for m in DUMP_PATTERN.findall(text)})

        found: List[str] = []
        for doc in docs:
            for marker in self._doc_markers(doc):
                if marker not in found:
                    found.append(marker)
        return found

    def _doc_markers(self, doc: Any) -> List[str]:
        if not isinstance(doc, dict):
            return []

        found = [k for k in DUMP_MARKERS if k in doc]

        metadata = doc.get("metadata")
        if isinstance(metadata, dict):
            # `kubectl create --dry-run -o yaml` emits `creationTimestamp: null`
            found.extend(f"metadata.{k}" for k in METADATA_MARKERS if metadata.get(k) is not None)

        # `kubectl get <kind> -o yaml` wraps results in a List
        kind = doc.get("kind")
        items = doc.get("items")
        if isinstance(kind, str) and kind.endswith("List") and isinstance(items, list):
            for item in items:
                found.extend(f"items[].{m}" for m in self._doc_markers(item))

        return found
