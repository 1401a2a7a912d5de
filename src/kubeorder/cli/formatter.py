# src/kubeorder/cli/formatter.py
from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kubeorder.core.models import ApplyReport, TeardownReport

# Shared console so log records and report tables interleave correctly
console = Console()

STATUS_STYLE = {
    "applied": ("green", "✅"),
    "planned": ("cyan", "📝"),
    "skipped": ("yellow", "⏭"),
    "failed": ("red", "❌"),
}


class KubeFormatter:
    """
    Renders headers and end-of-run reports for both subcommands.
    """

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console

    def print_header(self, subtitle: str, folders: Iterable[str] = (), hint: str = ""):
        body = "[bold cyan]KubeOrder v1.0.0[/bold cyan]\n"
        body += "══════════════════════════════════════════════════════════════════"
        if hint:
            body += f"\n[bold green]{escape('[INFO] ' + hint)}[/bold green]"
        self.console.print(Panel.fit(body, title=f"[bold white]{subtitle}[/bold white]", border_style="cyan"))

        folders = list(folders)
        if folders:
            self.console.print("[yellow]Top-level folders:[/yellow]")
            for name in folders:
                self.console.print(f"  - {name}")
            self.console.print()

    def print_apply_report(self, report: ApplyReport, strict: bool = False):
        table = Table(title="Apply Execution Report", show_lines=False, header_style="bold magenta")
        table.add_column("File Path", style="cyan")
        table.add_column("Group", style="white")
        table.add_column("Class", style="dim")
        table.add_column("Status", style="bold")
        table.add_column("Result", justify="center")

        for o in report.outcomes:
            color, icon = STATUS_STYLE.get(o.status, ("white", "?"))
            table.add_row(
                escape(o.path),
                o.group or "(root)",
                o.classification.value if o.classification else "-",
                f"[{color}]{o.status.upper()}[/{color}]",
                icon,
            )
        self.console.print(table)

        verdict = "[red]FAILED (strict)[/red]" if strict and report.failed else "[green]pass complete[/green]"
        self.console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Total Files:  {len(report.outcomes)}\n"
            f"Applied:      [green]{report.applied}[/green]\n"
            f"Planned:      [cyan]{report.planned}[/cyan]\n"
            f"Skipped:      [yellow]{report.skipped}[/yellow]\n"
            f"Failed:       [red]{report.failed}[/red]\n"
            f"Result:       {verdict}",
            border_style="dim"
        ))

    def print_teardown_report(self, report: TeardownReport):
        tag = escape(f"[{report.namespace}]")
        failed = report.failed_actions()
        planned = sum(1 for a in report.actions if a.mode == "plan")
        self.console.print(
            f"[bold white]{tag}[/bold white] "
            f"actions: {len(report.actions)}  planned: {planned}  "
            f"tolerated failures: [yellow]{len(failed)}[/yellow]  "
            f"drained: {'[green]yes[/green]' if report.drained else '[yellow]no[/yellow]'}"
        )

        if not report.remaining_volumes:
            return
        table = Table(title=f"{tag} Current PVs", header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Phase")
        table.add_column("Claim", style="dim")
        for v in report.remaining_volumes:
            color = "green" if v.phase == "Available" else "white"
            table.add_row(v.name, f"[{color}]{v.phase}[/{color}]", v.claim or "-")
        self.console.print(table)

    def print_teardown_footer(self, reports: List[TeardownReport]):
        self.console.print(f"\n[bold]Cleaned {len(reports)} namespace(s).[/bold]")
        self.console.print("[dim]Tip: verify deletion with: kubectl get ns[/dim]")
