#!/usr/bin/env python3
"""
KUBEORDER CORE MODELS
---------------------
Defines the fundamental data structures shared by the applier and the
teardown coordinator. Manifests are immutable once classified; every
cluster mutation leaves behind an outcome record.

Author: KubeOrder Team
Date: 2026-10-17
"""

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


class Classification(str, enum.Enum):
    """The verdict the Classifier hands to the Applier for a single file."""
    SKIP_EMPTY = "skip-empty"
    RUNTIME_DUMP = "runtime-dump"
    PARAMETERIZED = "parameterized"
    PLAIN = "plain"


@dataclass(frozen=True)
class ManifestFile:
    """
    A single manifest discovered on disk.

    The identity is the path. `group` is the top-level directory the file
    lives under, or None for loose files at the manifest root.
    """
    path: Path                   # Absolute path to the file
    rel_path: str                # Path relative to the manifest root (posix form)
    group: Optional[str] = None  # Top-level directory name
    content: str = ""            # Raw text, BOM stripped
    classification: Optional[Classification] = None
    read_error: Optional[str] = None  # Set when the file could not be read


@dataclass(frozen=True)
class DirectoryGroup:
    name: str
    files: List[ManifestFile] = field(default_factory=list)


@dataclass(frozen=True)
class PlaceholderBinding:
    """
    A placeholder token plus the value resolved for it from the environment.
    An unresolved binding (value is None) means affected files are skipped.
    """
    token: str = "WORKER_NODE_NAME"
    env_var: str = "WORKER_NODE_NAME"
    value: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.value)


@dataclass(frozen=True)
class ApplyOutcome:
    path: str
    group: Optional[str]
    classification: Optional[Classification]
    status: str  # applied|failed|skipped|planned
    detail: str = ""


@dataclass
class ApplyReport:
    outcomes: List[ApplyOutcome] = field(default_factory=list)

    def add(self, outcome: ApplyOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def applied(self) -> int:
        return self._count("applied")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def planned(self) -> int:
        return self._count("planned")

    def failures(self) -> List[ApplyOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]


@dataclass(frozen=True)
class ActionRecord:
    desc: str
    mode: str  # plan|apply
    ok: bool
    rc: Optional[int] = None
    stderr: str = ""


@dataclass(frozen=True)
class VolumeState:
    """One row of the post-teardown volume listing."""
    name: str
    phase: str
    claim: str = ""


@dataclass
class TeardownReport:
    namespace: str
    drained: bool = False
    actions: List[ActionRecord] = field(default_factory=list)
    remaining_volumes: List[VolumeState] = field(default_factory=list)

    def add_action(self, rec: ActionRecord) -> None:
        self.actions.append(rec)

    def failed_actions(self) -> List[ActionRecord]:
        return [a for a in self.actions if not a.ok and a.mode == "apply"]
