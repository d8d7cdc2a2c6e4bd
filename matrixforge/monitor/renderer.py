"""Rich terminal renderer for run summaries and ledger snapshots.

Color scheme
------------
- green     : SUCCEEDED
- red       : FAILED
- yellow    : TESTING / BUILDING / PACKAGING
- dim       : QUEUED
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from matrixforge.models.jobs import JobState, RunOutcome

if TYPE_CHECKING:
    from matrixforge.models.jobs import RunSummary
    from matrixforge.monitor.projection import RunSnapshot


_STATE_ICONS: dict[JobState, str] = {
    JobState.QUEUED: "[dim]QUEUED[/dim]",
    JobState.TESTING: "[yellow]TESTING[/yellow]",
    JobState.BUILDING: "[yellow]BUILDING[/yellow]",
    JobState.PACKAGING: "[yellow]PACKAGING[/yellow]",
    JobState.SUCCEEDED: "[green]SUCCEEDED[/green]",
    JobState.FAILED: "[bold red]FAILED[/bold red]",
}

_OUTCOME_STYLES: dict[RunOutcome, str] = {
    RunOutcome.SUCCESS: "green",
    RunOutcome.DEGRADED: "yellow",
    RunOutcome.FAILED: "red",
    RunOutcome.CANCELLED: "magenta",
}


class SummaryRenderer:
    """Renders run results as Rich panels.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Live run summary
    # ------------------------------------------------------------------

    def render_summary(self, summary: RunSummary) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Target", min_width=26)
        table.add_column("Host", style="dim")
        table.add_column("Strategy")
        table.add_column("State", justify="center")
        table.add_column("Details", min_width=20)
        table.add_column("Time", justify="right")

        for outcome in summary.outcomes:
            if outcome.artifact:
                details = f"[green]{outcome.artifact.archive_name}[/green]"
            elif outcome.error_kind:
                details = f"[red]{outcome.error_kind}[/red]: {escape(outcome.error_message or '')}"
            else:
                details = "[dim]-[/dim]"
            table.add_row(
                outcome.target_triple,
                outcome.host_os,
                outcome.toolchain_strategy.value,
                _STATE_ICONS.get(outcome.state, outcome.state.value),
                details,
                f"{outcome.duration_seconds:.1f}s",
            )

        style = _OUTCOME_STYLES[summary.outcome]
        parts = [
            f"[bold]Run:[/bold] {summary.run_id}",
            f"[bold]Tag:[/bold] {summary.tag}",
            f"[bold]Succeeded:[/bold] {len(summary.succeeded)}/{len(summary.outcomes)}",
            f"[bold]Outcome:[/bold] [{style}]{summary.outcome.value}[/{style}]",
        ]
        if summary.publish:
            parts.append(f"[bold]Assets:[/bold] {len(summary.publish.attached)}")
        if summary.publish_error:
            parts.append(f"[red]Publish failed: {escape(summary.publish_error)}[/red]")

        return Panel(
            Group(table, Text(""), Text.from_markup("  |  ".join(parts))),
            title="[bold]matrixforge release[/bold]",
            border_style=style,
            padding=(1, 2),
        )

    def print_summary(self, summary: RunSummary) -> None:
        self.console.print(self.render_summary(summary))

    # ------------------------------------------------------------------
    # Ledger snapshot
    # ------------------------------------------------------------------

    def render_snapshot(self, snapshot: RunSnapshot) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Target", min_width=26)
        table.add_column("State", justify="center")
        table.add_column("Details")
        table.add_column("At", style="dim")

        for status in snapshot.targets:
            table.add_row(
                status.target_triple,
                _STATE_ICONS.get(status.state, status.state.value),
                escape(status.detail) if status.detail else "[dim]-[/dim]",
                status.entered_at.strftime("%H:%M:%S") if status.entered_at else "",
            )

        chain = "[green]valid[/green]" if snapshot.chain_valid else "[bold red]BROKEN[/bold red]"
        parts = [
            f"[bold]Run:[/bold] {snapshot.run_id}",
            f"[bold]Tag:[/bold] {snapshot.tag}",
            f"[bold]Succeeded:[/bold] {snapshot.succeeded_count}/{len(snapshot.targets)}",
            f"[bold]Chain:[/bold] {chain}",
        ]
        if snapshot.outcome is not None:
            style = _OUTCOME_STYLES[snapshot.outcome]
            outcome = f"[{style}]{snapshot.outcome.value}[/{style}]"
            if snapshot.outcome_detail:
                outcome += f" ({escape(snapshot.outcome_detail)})"
            parts.append(f"[bold]Outcome:[/bold] {outcome}")
        footer = "  |  ".join(parts)
        return Panel(
            Group(table, Text(""), Text.from_markup(footer)),
            title="[bold]matrixforge run ledger[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    def print_snapshot(self, snapshot: RunSnapshot) -> None:
        self.console.print(self.render_snapshot(snapshot))
