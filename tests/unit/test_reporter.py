from __future__ import annotations

from rich.console import Console

from dlr_poller.orchestrator import CycleReport
from dlr_poller.reporter import print_cycle_report


def _console() -> Console:
    return Console(record=True, width=100, color_system=None)


def test_cycle_report_lists_outcomes_and_totals() -> None:
    console = _console()
    report = CycleReport(
        cycle=4,
        dispatched=1200,
        outcomes={"delivered": 1100, "pending": 100},
        duration_seconds=12.34,
        next_pause_seconds=60,
    )

    print_cycle_report(report, console=console)

    text = console.export_text()
    assert "DLR Poller Cycle 4" in text
    assert "delivered" in text
    assert "1,100" in text
    assert "1,200" in text
    assert "12.3" in text
    assert "Next pause: 60s" in text
    assert "Blocked" not in text


def test_blocked_cycle_is_flagged() -> None:
    console = _console()
    report = CycleReport(
        cycle=1, dispatched=3, outcomes={"throttled": 3}, blocked=True, next_pause_seconds=600
    )

    print_cycle_report(report, console=console)

    text = console.export_text()
    assert "Blocked by SMSC" in text
    assert "Next pause: 600s" in text


def test_missing_report_prints_notice() -> None:
    console = _console()

    print_cycle_report(None, console=console)

    assert "No cycle was run." in console.export_text()
