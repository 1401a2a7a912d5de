#!/usr/bin/env python3
"""
KUBEORDER CONFIGURATION
-----------------------
Runtime settings assembled from built-in defaults, the process environment
and CLI flags. The manifest directory layout may additionally be overridden
by a small YAML file (`--layout`).

Author: KubeOrder Team
Date: 2026-10-17
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kubeorder.core.models import PlaceholderBinding

# Namespaces first, then storage so PVs exist before the workloads that claim them
DEFAULT_ORDERED_GROUPS: Tuple[str, ...] = (
    "00-namespaces",
    "05-storage",
    "01-node-metrics",
    "02-monitoring",
    "04-jenkins-integration",
)
DEFAULT_NAMESPACE_FILE = "00-namespaces/00-namespaces.yaml"
DEFAULT_STORAGE_GROUP = "05-storage"
DEFAULT_PLACEHOLDER = "WORKER_NODE_NAME"
DEFAULT_EXAMPLE_HOSTNAMES: Tuple[str, ...] = ("k8s-worker1", "k8s-worker")

DRAIN_ATTEMPTS = 6
DRAIN_DELAY_S = 5.0


class LayoutError(ValueError):
    """The layout override file is unreadable or malformed."""


@dataclass(frozen=True)
class Layout:
    """Where things live inside the manifest tree."""
    namespace_file: str = DEFAULT_NAMESPACE_FILE
    ordered_groups: Tuple[str, ...] = DEFAULT_ORDERED_GROUPS
    storage_group: str = DEFAULT_STORAGE_GROUP
    placeholder: str = DEFAULT_PLACEHOLDER
    example_hostnames: Tuple[str, ...] = DEFAULT_EXAMPLE_HOSTNAMES


@dataclass(frozen=True)
class Settings:
    root: Path = Path(".")
    kubectl: str = "kubectl"
    binding_env: str = DEFAULT_PLACEHOLDER
    binding_value: Optional[str] = None
    layout: Layout = field(default_factory=Layout)
    drain_attempts: int = DRAIN_ATTEMPTS
    drain_delay_s: float = DRAIN_DELAY_S
    strict: bool = False
    dry_run: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "Settings":
        """Builds settings from `environ` (defaults to os.environ) plus explicit overrides."""
        env = os.environ if environ is None else environ
        base = cls(
            kubectl=env.get("KUBECTL") or "kubectl",
            binding_value=env.get(DEFAULT_PLACEHOLDER) or None,
        )
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(base, **clean)

    def binding(self) -> PlaceholderBinding:
        return PlaceholderBinding(
            token=self.layout.placeholder,
            env_var=self.binding_env,
            value=self.binding_value,
        )


def _as_str_tuple(data: Dict[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if key not in data:
        return default
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise LayoutError(f"'{key}' must be a list of non-empty strings")
    return tuple(value)


def _as_str(data: Dict[str, Any], key: str, default: str) -> str:
    if key not in data:
        return default
    value = data[key]
    if not isinstance(value, str) or not value:
        raise LayoutError(f"'{key}' must be a non-empty string")
    return value


def load_layout(path: Path) -> Layout:
    """
    Reads a layout override file. Unknown keys are rejected so a typo does
    not silently fall back to the default ordering.
    """
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise LayoutError(f"Unable to read layout file {path}: {e}") from e

    try:
        data = YAML(typ="safe").load(text)
    except YAMLError as e:
        raise LayoutError(f"Layout file {path} is not valid YAML: {e}") from e

    if data is None:
        return Layout()
    if not isinstance(data, dict):
        raise LayoutError(f"Layout file {path} must contain a mapping")

    known = {"namespace_file", "ordered_groups", "storage_group", "placeholder", "example_hostnames"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise LayoutError(f"Unknown layout keys: {', '.join(unknown)}")

    return Layout(
        namespace_file=_as_str(data, "namespace_file", DEFAULT_NAMESPACE_FILE),
        ordered_groups=_as_str_tuple(data, "ordered_groups", DEFAULT_ORDERED_GROUPS),
        storage_group=_as_str(data, "storage_group", DEFAULT_STORAGE_GROUP),
        placeholder=_as_str(data, "placeholder", DEFAULT_PLACEHOLDER),
        example_hostnames=_as_str_tuple(data, "example_hostnames", DEFAULT_EXAMPLE_HOSTNAMES),
    )
