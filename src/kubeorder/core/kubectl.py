#!/usr/bin/env python3
"""
KUBEORDER KUBECTL CLIENT - The Courier
--------------------------------------
Thin wrapper around the `kubectl` binary. Every cluster interaction in
KubeOrder goes through this class, which keeps dry-run planning and
error mapping in one place.

Reads (`get`) always execute, even in dry-run mode, because the teardown
coordinator has to discover live state to decide what it would do.
Mutations (`apply`, `patch`, `delete`) are printed as planned actions
when dry-run is enabled.

Author: KubeOrder Team
Date: 2026-10-17
"""

import json
import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger("kubeorder.kubectl")


class KubectlUnavailable(RuntimeError):
    """The kubectl binary is not installed or not in PATH."""


class KubectlError(RuntimeError):
    """A kubectl read that had to succeed did not."""


@dataclass(frozen=True)
class KubectlResult:
    rc: int
    stdout: str
    stderr: str
    planned: bool = False

    @property
    def ok(self) -> bool:
        return self.rc == 0


def _fmt(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in args)


class KubectlClient:
    """
    Executes kubectl commands and returns structured results.

    `runner` defaults to `subprocess.run` and exists so tests can record
    the exact argument vectors without a cluster.
    """

    def __init__(self, binary: str = "kubectl", *, dry_run: bool = False,
                 runner: Optional[Callable[..., Any]] = None):
        self.binary = binary
        self.dry_run = dry_run
        self._runner = runner or subprocess.run

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def ensure_available(self) -> None:
        if not self.available():
            raise KubectlUnavailable(f"{self.binary} is not installed or not in PATH")

    # --- LOW LEVEL ---

    def run(self, args: Sequence[str]) -> KubectlResult:
        """Runs kubectl with `args`. Non-zero exits are returned, not raised."""
        cmd = [self.binary, *args]
        logger.debug(f"$ {_fmt(cmd)}")
        try:
            p = self._runner(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise KubectlUnavailable(f"{self.binary} executable not found") from e
        return KubectlResult(
            rc=p.returncode,
            stdout=(p.stdout or "").strip(),
            stderr=(p.stderr or "").strip(),
        )

    def mutate(self, args: Sequence[str]) -> KubectlResult:
        """Runs a mutating command, or only announces it in dry-run mode."""
        if self.dry_run:
            print(f"+ (plan) {_fmt([self.binary, *args])}")
            return KubectlResult(rc=0, stdout="", stderr="", planned=True)
        return self.run(args)

    def json(self, args: Sequence[str]) -> Any:
        res = self.run([*args, "-o", "json"])
        if not res.ok:
            raise KubectlError(f"kubectl {_fmt(args)} failed: {res.stderr}")
        if not res.stdout:
            return None
        try:
            return json.loads(res.stdout)
        except json.JSONDecodeError as e:
            raise KubectlError(f"kubectl {_fmt(args)} returned invalid JSON: {e}") from e

    # --- RESOURCE VERBS ---

    def list_items(self, kind: str, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Lists objects of `kind`. Raises KubectlError when the read fails so
        callers can decide whether an empty listing is acceptable.
        """
        args = ["get", kind]
        if namespace:
            args += ["-n", namespace]
        data = self.json(args) or {}
        return list(data.get("items") or [])

    def apply(self, path: Path) -> KubectlResult:
        return self.mutate(["apply", "-f", str(path)])

    def delete(self, kind: str, name: str, namespace: Optional[str] = None, *,
               wait: bool = True, force: bool = False) -> KubectlResult:
        args = ["delete", kind, name]
        if namespace:
            args += ["-n", namespace]
        if force:
            args += ["--grace-period=0", "--force"]
        if not wait:
            args.append("--wait=false")
        return self.mutate(args)

    def patch_merge(self, kind: str, name: str, patch: Dict[str, Any],
                    namespace: Optional[str] = None) -> KubectlResult:
        args = ["patch", kind, name]
        if namespace:
            args += ["-n", namespace]
        args += ["--type=merge", "-p", json.dumps(patch, separators=(",", ":"))]
        return self.mutate(args)

    def patch_json(self, kind: str, name: str, ops: List[Dict[str, Any]],
                   namespace: Optional[str] = None) -> KubectlResult:
        args = ["patch", kind, name]
        if namespace:
            args += ["-n", namespace]
        args += ["--type=json", "-p", json.dumps(ops, separators=(",", ":"))]
        return self.mutate(args)
