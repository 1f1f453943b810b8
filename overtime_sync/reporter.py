from __future__ import annotations

from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from overtime_sync.dashboard import DashboardSummary
from overtime_sync.domain.models import Record, Status
from overtime_sync.orchestrator import CycleResult
from overtime_sync.utils.timeutils import format_duration

_STATUS_STYLES = {
    Status.PENDING: "yellow",
    Status.APPROVED: "green",
    Status.REJECTED: "red",
}


def print_records(records: List[Record], console: Optional[Console] = None) -> None:
    """
    Render records as a rich table, newest first, with the total duration.
    """
    console = console or Console()

    if not records:
        console.print("[yellow]No records to display.[/yellow]")
        return

    total_minutes = sum(record.duration_minutes for record in records)
    table = Table(
        title="Overtime Records",
        box=box.ROUNDED,
        caption=f"{len(records)} record(s) │ total {format_duration(total_minutes)}",
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Employee", style="cyan")
    table.add_column("Supervisor", style="magenta")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Duration", justify="right", style="bold green")
    table.add_column("Location")
    table.add_column("Status", justify="center")
    table.add_column("Reason", overflow="fold")

    for record in records:
        style = _STATUS_STYLES.get(record.status, "white")
        table.add_row(
            record.id,
            record.employee,
            record.supervisor,
            f"{record.start_date} {record.start_time}",
            f"{record.end_date} {record.end_time}",
            format_duration(record.duration_minutes),
            record.location,
            f"[{style}]{record.status.value}[/{style}]",
            record.reason,
        )

    console.print(table)


def _counts_table(title: str, label: str, rows: Iterable[tuple[str, str]]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column(label, style="cyan")
    table.add_column("Value", justify="right", style="bold green")
    for name, value in rows:
        table.add_row(name or "-", value)
    return table


def print_summary(summary: DashboardSummary, console: Optional[Console] = None) -> None:
    """
    Render dashboard totals: hours per supervisor, submissions per location and status.
    """
    console = console or Console()

    if summary.record_count == 0:
        console.print("[yellow]No records to summarize.[/yellow]")
        return

    console.print(
        f"[bold]{summary.record_count}[/bold] record(s), "
        f"[bold green]{format_duration(summary.total_minutes)}[/bold green] total"
    )
    by_supervisor = sorted(
        summary.minutes_by_supervisor.items(), key=lambda item: item[1], reverse=True
    )
    console.print(
        _counts_table(
            "Hours by Supervisor",
            "Supervisor",
            (
                (name, f"{format_duration(minutes)} ({summary.hours_by_supervisor[name]:.2f} h)")
                for name, minutes in by_supervisor
            ),
        )
    )
    console.print(
        _counts_table(
            "Records by Location",
            "Location",
            ((name, str(count)) for name, count in summary.count_by_location.items()),
        )
    )
    console.print(
        _counts_table(
            "Records by Status",
            "Status",
            ((name, str(count)) for name, count in summary.count_by_status.items()),
        )
    )


def print_cycle(result: CycleResult, console: Optional[Console] = None) -> None:
    """
    One-line sync indicator for a finished cycle.
    """
    console = console or Console()
    if result.warning:
        console.print(f"[yellow]⚠ {result.warning}[/yellow]")
    elif not result.remote_fetched:
        console.print("[yellow]Offline: showing cached records.[/yellow]")
    else:
        console.print(
            f"[green]✓ Synced[/green] [dim]{len(result.records)} record(s), "
            f"{result.duration_seconds * 1000:.0f} ms[/dim]"
        )
