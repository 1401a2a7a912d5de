#!/usr/bin/env python3
"""
KUBEORDER MANIFEST SOURCE - The Cartographer
--------------------------------------------
Maps a manifest tree into DirectoryGroups in the order they must be
applied. The order is fixed by the layout, never by how the filesystem
happens to list entries.

Author: KubeOrder Team
Date: 2026-10-17
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional

from kubeorder.core.config import Layout
from kubeorder.core.models import DirectoryGroup, ManifestFile

logger = logging.getLogger("kubeorder.source")

MANIFEST_SUFFIXES = (".yaml", ".yml")


class ManifestSource:
    """
    Read-only view of a manifest root directory.
    """

    def __init__(self, root: Path, layout: Optional[Layout] = None):
        self.root = Path(root).resolve()
        self.layout = layout or Layout()

    def _load(self, path: Path, group: Optional[str]) -> ManifestFile:
        rel = path.relative_to(self.root).as_posix()
        try:
            content = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to read {rel}: {e}")
            return ManifestFile(path=path, rel_path=rel, group=group, read_error=str(e))
        return ManifestFile(path=path, rel_path=rel, group=group, content=content)

    def _is_manifest(self, path: Path) -> bool:
        return path.is_file() and not path.is_symlink() and path.suffix.lower() in MANIFEST_SUFFIXES

    def namespace_file(self) -> Optional[ManifestFile]:
        """The single namespace-definition file, or None if it is absent."""
        candidate = self.root / self.layout.namespace_file
        if not candidate.is_file():
            return None
        parts = Path(self.layout.namespace_file).parts
        return self._load(candidate, parts[0] if len(parts) > 1 else None)

    def top_level_dirs(self) -> List[str]:
        """Non-hidden top-level directories, lexically sorted."""
        if not self.root.is_dir():
            return []
        return sorted(
            d.name for d in self.root.iterdir()
            if d.is_dir() and not d.is_symlink() and not d.name.startswith(".")
        )

    def group(self, name: str) -> Optional[DirectoryGroup]:
        """
        Enumerates every manifest below `name` recursively, in lexical path
        order. Returns None if the directory does not exist.
        """
        base = self.root / name
        if not base.is_dir():
            return None
        paths = sorted(
            (p for p in base.rglob("*") if self._is_manifest(p)),
            key=lambda p: p.relative_to(self.root).as_posix(),
        )
        return DirectoryGroup(name=name, files=[self._load(p, name) for p in paths])

    def ordered_groups(self) -> Iterator[DirectoryGroup]:
        """
        Yields the declared groups first (skipping absent ones), then every
        other top-level directory lexically.
        """
        declared = list(self.layout.ordered_groups)
        for name in declared:
            grp = self.group(name)
            if grp is None:
                logger.info(f"Ordered path {name} not present; skipping")
                continue
            yield grp

        for name in self.top_level_dirs():
            if name in declared:
                continue
            grp = self.group(name)
            if grp is not None:
                yield grp

    def loose_files(self) -> List[ManifestFile]:
        """
        Manifest files sitting directly at the root: all *.yaml, then all
        *.yml, each lexically. A file named like the namespace definition is
        excluded because that definition has already been applied.
        """
        if not self.root.is_dir():
            return []
        ns_name = Path(self.layout.namespace_file).name
        ns_stem = Path(self.layout.namespace_file).stem
        files = []
        for suffix in MANIFEST_SUFFIXES:
            for p in sorted(self.root.glob(f"*{suffix}")):
                if not self._is_manifest(p):
                    continue
                if p.name == ns_name or p.stem == ns_stem:
                    logger.info(f"Skipping loose {p.name}: namespace definition already applied")
                    continue
                files.append(self._load(p, None))
        return files
