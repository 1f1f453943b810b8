from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console

from overtime_sync.access import dashboard_records, visible_records
from overtime_sync.backup import export_csv, export_json
from overtime_sync.config import get_settings
from overtime_sync.dashboard import summarize
from overtime_sync.domain.models import Location, RecordDraft, Role, Status
from overtime_sync.errors import OvertimeSyncError
from overtime_sync.reporter import print_cycle, print_records, print_summary
from overtime_sync.session import AppContext, open_app
from overtime_sync.utils.logging import configure_logging

app = typer.Typer(help="Overtime records with offline-first multi-device sync.")
console = Console()


def _run(action: Callable[[AppContext], Awaitable[None]]) -> None:
    """Run one async command inside a fully wired application."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_logs=settings.log_json,
        context={"app_env": settings.app_env, "project": settings.project_key},
    )

    async def runner() -> None:
        async with open_app(settings) as ctx:
            await action(ctx)

    try:
        asyncio.run(runner())
    except OvertimeSyncError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"remote={settings.remote_base_url}/{settings.project_key}_* | "
        f"interval={settings.sync_interval_seconds}s "
        f"cooldown={settings.rate_limit_cooldown_seconds}s | "
        f"data_dir={settings.resolved_data_dir}"
    )


@app.command()
def register(
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
    role: Role = typer.Option(Role.EMPLOYEE, "--role", case_sensitive=False),
    name: str = typer.Option("", "--name", "-n", help="Display name (ignored for coordinators)."),
    supervisor: Optional[str] = typer.Option(
        None, "--supervisor", help="Supervisor name (required for employees)."
    ),
) -> None:
    """
    Create an account and log in with it.
    """

    async def action(ctx: AppContext) -> None:
        user = await ctx.auth.register(username, password, role, name, supervisor)
        await ctx.session.login(user.username, password, poll=False)
        typer.echo(f"Registered and logged in as {user.name} ({user.role.value}).")

    _run(action)


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """
    Log in and run the first sync.
    """

    async def action(ctx: AppContext) -> None:
        user = await ctx.session.login(username, password, poll=False)
        typer.echo(f"Logged in as {user.name} ({user.role.value}).")
        typer.echo(f"{len(ctx.orchestrator.records)} record(s) available.")

    _run(action)


@app.command()
def logout() -> None:
    """
    Forget the logged-in identity (cached records are kept).
    """

    async def action(ctx: AppContext) -> None:
        await ctx.session.logout()
        typer.echo("Logged out.")

    _run(action)


@app.command()
def whoami() -> None:
    """
    Show the logged-in user.
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        supervisor = f", supervisor={user.supervisor_name}" if user.supervisor_name else ""
        typer.echo(f"{user.username}: {user.name} ({user.role.value}{supervisor})")

    _run(action)


@app.command("change-password")
def change_password(
    current: str = typer.Option(..., "--current", prompt=True, hide_input=True),
    new: str = typer.Option(
        ..., "--new", prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """
    Change the logged-in user's password.
    """

    async def action(ctx: AppContext) -> None:
        await ctx.session.change_password(current, new)
        typer.echo("Password updated.")

    _run(action)


@app.command()
def submit(
    start_date: str = typer.Option(..., "--start-date", help="YYYY-MM-DD"),
    start_time: str = typer.Option(..., "--start-time", help="HH:MM"),
    end_date: str = typer.Option(..., "--end-date", help="YYYY-MM-DD"),
    end_time: str = typer.Option(..., "--end-time", help="HH:MM"),
    reason: str = typer.Option(..., "--reason", "-m"),
    location: Location = typer.Option(Location.SANTOS, "--location"),
    employee: Optional[str] = typer.Option(None, "--employee", help="Defaults to your name."),
    supervisor: Optional[str] = typer.Option(
        None, "--supervisor", help="Defaults to your supervisor."
    ),
) -> None:
    """
    Submit an overtime record.
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        draft = RecordDraft(
            coordinator=ctx.settings.coordinator_name,
            supervisor=supervisor or user.supervisor_name or user.name,
            employee=employee or user.name,
            start_date=start_date,
            start_time=start_time,
            end_date=end_date,
            end_time=end_time,
            location=location.value,
            reason=reason,
        )
        result = await ctx.orchestrator.create_record(draft, owner=user)
        typer.echo(f"Saved {result.record.id} ({result.record.duration_minutes} min).")
        print_cycle(result, console)

    try:
        _run(action)
    except ValueError as exc:
        typer.secho(f"Invalid date or time: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("list")
def list_records(
    employee: Optional[str] = typer.Option(None, "--employee", "-e", help="Name filter."),
    month: Optional[str] = typer.Option(None, "--month", help="YYYY-MM"),
    refresh: bool = typer.Option(True, "--refresh/--cached", help="Pull remote changes first."),
) -> None:
    """
    List the records visible to you.
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        if refresh:
            print_cycle(await ctx.orchestrator.refresh(), console)
        print_records(visible_records(user, ctx.orchestrator.records, employee, month), console)

    _run(action)


def _set_status(record_id: str, status: Status) -> None:
    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        result = await ctx.orchestrator.update_status(record_id, status, actor=user)
        typer.echo(f"{record_id} -> {status.value}")
        print_cycle(result, console)

    _run(action)


@app.command()
def approve(record_id: str = typer.Argument(...)) -> None:
    """
    Approve a record.
    """
    _set_status(record_id, Status.APPROVED)


@app.command()
def reject(record_id: str = typer.Argument(...)) -> None:
    """
    Reject a record.
    """
    _set_status(record_id, Status.REJECTED)


@app.command()
def delete(record_id: str = typer.Argument(...)) -> None:
    """
    Delete one of your pending records.
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        result = await ctx.orchestrator.delete_record(record_id, actor=user)
        typer.echo(f"Deleted {record_id}.")
        print_cycle(result, console)

    _run(action)


@app.command()
def sync() -> None:
    """
    Sync now: pull remote changes and push local ones.
    """

    async def action(ctx: AppContext) -> None:
        ctx.session.require_user()
        print_cycle(await ctx.orchestrator.sync_now(), console)

    _run(action)


@app.command()
def watch() -> None:
    """
    Keep syncing in the background until interrupted.
    """

    async def action(ctx: AppContext) -> None:
        ctx.session.require_user()
        print_cycle(await ctx.session.start(poll=True), console)
        orchestrator = ctx.orchestrator
        typer.echo(f"Polling every {orchestrator.interval_seconds:g}s; Ctrl+C to stop.")
        while True:
            await asyncio.sleep(orchestrator.interval_seconds)
            synced = orchestrator.last_synced_at
            stamp = synced.astimezone().strftime("%H:%M:%S") if synced else "never"
            typer.echo(f"{len(orchestrator.records)} record(s), last synced {stamp}")

    _run(action)


@app.command()
def export(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File (default stdout)."),
) -> None:
    """
    Export the whole collection as a JSON backup.
    """

    async def action(ctx: AppContext) -> None:
        ctx.session.require_user()
        text = export_json(ctx.orchestrator.records)
        if output:
            output.write_text(text, encoding="utf-8")
            typer.echo(f"Wrote {len(ctx.orchestrator.records)} record(s) to {output}.")
        else:
            typer.echo(text)

    _run(action)


@app.command("export-csv")
def export_csv_command(
    output: Path = typer.Option(..., "--output", "-o"),
    employee: Optional[str] = typer.Option(None, "--employee", "-e"),
    month: Optional[str] = typer.Option(None, "--month", help="YYYY-MM"),
) -> None:
    """
    Export the records visible to you as CSV.
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        records = visible_records(user, ctx.orchestrator.records, employee, month)
        output.write_text(export_csv(records), encoding="utf-8")
        typer.echo(f"Wrote {len(records)} record(s) to {output}.")

    _run(action)


@app.command("import")
def import_backup(
    source: str = typer.Argument(..., help="Backup file, or '-' to read stdin."),
) -> None:
    """
    Merge a JSON backup; records already present are never overwritten.
    """
    payload = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")

    async def action(ctx: AppContext) -> None:
        ctx.session.require_user()
        result = await ctx.orchestrator.import_records(payload)
        typer.echo(f"Imported {result.imported} new record(s).")
        print_cycle(result, console)

    _run(action)


@app.command()
def summary() -> None:
    """
    Dashboard totals (coordinators and supervisors).
    """

    async def action(ctx: AppContext) -> None:
        user = ctx.session.require_user()
        if user.role == Role.EMPLOYEE:
            typer.echo("The dashboard is available to coordinators and supervisors.")
            return
        print_summary(summarize(dashboard_records(user, ctx.orchestrator.records)), console)

    _run(action)


@app.command("set-webhook")
def set_webhook(
    url: Optional[str] = typer.Argument(None, help="Webhook URL; omit to clear."),
) -> None:
    """
    Configure the spreadsheet webhook for every device.
    """

    async def action(ctx: AppContext) -> None:
        ctx.session.require_user()
        published = await ctx.webhook.set_url(url)
        state = "set" if url else "cleared"
        where = "for all devices" if published else "locally (server unreachable)"
        typer.echo(f"Webhook {state} {where}.")

    _run(action)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
