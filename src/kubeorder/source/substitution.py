#!/usr/bin/env python3
"""
KUBEORDER SUBSTITUTION ENGINE
-----------------------------
Turns a parameterized storage manifest into a concrete one by replacing
the placeholder token with the value bound from the environment.

The concrete manifest only ever exists as a temporary file scoped to a
`with` block. It is removed when the block exits, whether the apply
inside it succeeded, failed or raised.

Author: KubeOrder Team
Date: 2026-10-17
"""

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator

from kubeorder.core.models import ManifestFile, PlaceholderBinding

logger = logging.getLogger("kubeorder.substitution")


class SubstitutionSkipped(Exception):
    """
    The binding has no value, so the manifest must not be applied.
    Carries the operator-facing warning as its message.
    """

    def __init__(self, manifest: ManifestFile, binding: PlaceholderBinding):
        self.manifest = manifest
        self.binding = binding
        super().__init__(
            f"Storage PV contains placeholder hostnames; set {binding.env_var} env var "
            f"or edit before applying: {manifest.rel_path}"
        )


class KubeSubstituter:

    def render(self, manifest: ManifestFile, binding: PlaceholderBinding) -> str:
        """Global textual replacement of the token. Raises SubstitutionSkipped if unbound."""
        if not binding.resolved:
            raise SubstitutionSkipped(manifest, binding)
        return manifest.content.replace(binding.token, binding.value)

    @contextlib.contextmanager
    def resolve(self, manifest: ManifestFile, binding: PlaceholderBinding) -> Iterator[Path]:
        """
        Yields the path of a temporary concrete manifest.

        Usage:
            with substituter.resolve(manifest, binding) as concrete:
                client.apply(concrete)
        """
        rendered = self.render(manifest, binding)

        fd, name = tempfile.mkstemp(prefix="kubeorder-", suffix=manifest.path.suffix or ".yaml")
        temp_path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(rendered)
            logger.debug(f"Rendered {manifest.rel_path} -> {temp_path}")
            yield temp_path
        finally:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass
