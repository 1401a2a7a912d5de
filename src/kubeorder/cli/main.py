#!/usr/bin/env python3
"""
KUBEORDER CLI
-------------
Primary interface. Two subcommands:

  apply    walk a manifest tree and apply it in dependency order
  cleanup  force-remove one or more stuck namespaces

Exit codes:
  apply    0 pass completed, 1 failures in --strict mode, 2 kubectl missing
  cleanup  0 done, 2 usage error, 3 kubectl missing

Author: KubeOrder Team
Date: 2026-10-17
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich.logging import RichHandler
from rich.markup import escape

from kubeorder.apply.applier import OrderedApplier
from kubeorder.cli.formatter import KubeFormatter, console
from kubeorder.core.config import LayoutError, Settings, load_layout
from kubeorder.core.kubectl import KubectlClient, KubectlUnavailable
from kubeorder.source.classifier import KubeClassifier
from kubeorder.source.scanner import ManifestSource
from kubeorder.teardown.coordinator import TeardownCoordinator

logger = logging.getLogger("kubeorder.cli")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_APPLY_NO_KUBECTL = 2
EXIT_USAGE = 2
EXIT_CLEANUP_NO_KUBECTL = 3


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
    )


class KubeOrderCLI:
    """
    CLI wrapper that translates user commands into Applier and
    Teardown Coordinator runs.
    """

    def __init__(self, formatter: Optional[KubeFormatter] = None):
        self.parser = argparse.ArgumentParser(
            prog="kubeorder",
            description="KubeOrder - ordered manifest apply & stuck namespace cleanup",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = formatter or KubeFormatter()
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("--version", action="version", version="kubeorder v1.0.0")

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument("--dry-run", action="store_true", help="Print mutating kubectl calls instead of running them")
        common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        apply_parser = subparsers.add_parser("apply", parents=[common], help="📦 Apply manifests in dependency order")
        apply_parser.add_argument("root", nargs="?", default=".", help="Manifest root directory (default: .)")
        apply_parser.add_argument("--strict", action="store_true", help="Exit 1 if any manifest failed to apply")
        apply_parser.add_argument("--layout", type=Path, help="YAML file overriding the directory layout")

        cleanup_parser = subparsers.add_parser("cleanup", parents=[common], help="🧹 Force-clean stuck namespaces")
        cleanup_parser.add_argument("namespaces", nargs="+", metavar="namespace", help="Namespace(s) to remove")
        cleanup_parser.add_argument("--attempts", type=int, default=None, help="Pod drain polls (default: 6)")
        cleanup_parser.add_argument("--delay", type=float, default=None, help="Seconds between drain polls (default: 5)")

    # --- APPLY ---

    def run_apply(self, args: argparse.Namespace) -> int:
        try:
            layout = load_layout(args.layout) if args.layout else None
        except LayoutError as e:
            console.print(f"[bold red]Layout error:[/bold red] {escape(str(e))}")
            return EXIT_USAGE
        settings = Settings.from_env(root=Path(args.root), strict=args.strict,
                                     dry_run=args.dry_run, layout=layout)

        source = ManifestSource(settings.root, settings.layout)
        self.formatter.print_header(
            "Ordered Apply",
            source.top_level_dirs(),
            hint=f"To apply PVs set {settings.binding_env} and re-run kubeorder apply",
        )

        client = KubectlClient(settings.kubectl, dry_run=settings.dry_run)
        try:
            client.ensure_available()
        except KubectlUnavailable as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return EXIT_APPLY_NO_KUBECTL

        if not source.root.is_dir():
            logger.warning(f"Manifest root {source.root} is not a directory; nothing to apply")

        applier = OrderedApplier(client, classifier=KubeClassifier(settings.layout))
        report = applier.run(source, settings.binding())
        self.formatter.print_apply_report(report, strict=settings.strict)

        if settings.strict and report.failed:
            return EXIT_FAILURES
        return EXIT_OK

    # --- CLEANUP ---

    def run_cleanup(self, args: argparse.Namespace) -> int:
        settings = Settings.from_env(
            dry_run=args.dry_run,
            drain_attempts=args.attempts,
            drain_delay_s=args.delay,
        )
        if settings.drain_attempts < 1:
            console.print("[bold red]Error:[/bold red] --attempts must be at least 1")
            return EXIT_USAGE
        if settings.drain_delay_s < 0:
            console.print("[bold red]Error:[/bold red] --delay must not be negative")
            return EXIT_USAGE

        client = KubectlClient(settings.kubectl, dry_run=settings.dry_run)
        try:
            client.ensure_available()
        except KubectlUnavailable as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return EXIT_CLEANUP_NO_KUBECTL

        coordinator = TeardownCoordinator(
            client,
            attempts=settings.drain_attempts,
            delay_s=settings.drain_delay_s,
        )
        reports = []
        for ns in args.namespaces:
            report = coordinator.teardown(ns)
            self.formatter.print_teardown_report(report)
            reports.append(report)
        self.formatter.print_teardown_footer(reports)
        return EXIT_OK

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point. Returns the process exit code."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.formatter.print_header("Ordered Apply & Namespace Cleanup")
            self.parser.print_help()
            return EXIT_OK

        args = self.parser.parse_args(argv)
        configure_logging(getattr(args, "verbose", False))

        if args.command == "apply":
            return self.run_apply(args)
        if args.command == "cleanup":
            return self.run_cleanup(args)
        self.parser.print_help()
        return EXIT_USAGE


def _exit(argv: Optional[List[str]]) -> None:
    try:
        code = KubeOrderCLI().run(argv)
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)
    sys.exit(code)


def main(argv: Optional[List[str]] = None):
    """Application entry point with interrupt handling."""
    _exit(argv)


def apply_main(argv: Optional[List[str]] = None):
    """`kubeorder-apply` console script."""
    _exit(["apply", *(sys.argv[1:] if argv is None else argv)])


def cleanup_main(argv: Optional[List[str]] = None):
    """`kubeorder-cleanup` console script."""
    _exit(["cleanup", *(sys.argv[1:] if argv is None else argv)])


if __name__ == "__main__":
    main()
