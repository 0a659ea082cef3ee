from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from dlr_poller.domain.models import ProcessOutcome
from dlr_poller.orchestrator import CycleReport

# Outcomes that resolved the record in storage
_RESOLVED = {ProcessOutcome.DELIVERED.value, ProcessOutcome.FAILED_REPORTED.value}


def print_cycle_report(report: Optional[CycleReport], console: Optional[Console] = None) -> None:
    """
    Render the summary of a cycle as a rich table.

    Used by one-shot runs (`--once`) so an operator sees what the cycle did
    without reading the logs.
    """
    console = console or Console()

    if report is None:
        console.print("[yellow]No cycle was run.[/yellow]")
        return

    caption = f"Next pause: {report.next_pause_seconds}s"
    if report.blocked:
        caption = f"[bold red]Blocked by SMSC[/bold red] │ {caption}"

    table = Table(
        title=f"DLR Poller Cycle {report.cycle}",
        box=box.ROUNDED,
        caption=caption,
    )
    table.add_column("Outcome", style="cyan", no_wrap=True)
    table.add_column("Records", justify="right", style="magenta")

    for outcome, count in report.outcomes.items():
        style = "green" if outcome in _RESOLVED else None
        table.add_row(outcome, f"{count:,}", style=style)

    table.add_section()
    table.add_row("dispatched", f"{report.dispatched:,}", style="bold")
    table.add_row("duration (s)", f"{report.duration_seconds:.1f}")

    console.print(table)


__all__ = ["print_cycle_report"]
