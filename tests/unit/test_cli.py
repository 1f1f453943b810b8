from __future__ import annotations

import json
import re
from contextlib import asynccontextmanager

import httpx
import pytest
from typer.testing import CliRunner

from overtime_sync import main
from overtime_sync.session import open_app

runner = CliRunner()


@pytest.fixture
def cli(monkeypatch, test_settings, blob_store):
    @asynccontextmanager
    async def fake_open_app(settings=None):
        async with open_app(test_settings, transport=httpx.MockTransport(blob_store.handler)) as app:
            yield app

    monkeypatch.setattr(main, "get_settings", lambda: test_settings)
    monkeypatch.setattr(main, "open_app", fake_open_app)
    monkeypatch.setattr(main, "configure_logging", lambda **_: None)

    def invoke(*args: str, input: str | None = None):
        return runner.invoke(main.app, list(args), input=input)

    return invoke


def _register_team(cli) -> None:
    assert cli("register", "-u", "ailton", "-p", "pw", "--role", "coordinator").exit_code == 0
    assert (
        cli("register", "-u", "erik", "-p", "pw", "--role", "supervisor", "-n", "Erik Salvador").exit_code
        == 0
    )
    result = cli(
        "register", "-u", "joao", "-p", "pw", "-n", "João Silva", "--supervisor", "Erik Salvador"
    )
    assert result.exit_code == 0, result.output


def _submit(cli) -> str:
    result = cli(
        "submit",
        "--start-date", "2024-03-01",
        "--start-time", "23:30",
        "--end-date", "2024-03-02",
        "--end-time", "00:15",
        "-m", "Ship loading",
    )
    assert result.exit_code == 0, result.output
    return re.search(r"Saved (\S+) \(45 min\)", result.output).group(1)


def test_info_prints_configuration(cli):
    result = cli("info")

    assert result.exit_code == 0
    assert "proj_*" in result.output


def test_commands_require_login(cli):
    result = cli("list")

    assert result.exit_code == 1
    assert "Not logged in" in result.output


def test_employee_submits_and_supervisor_approves(cli, blob_store):
    _register_team(cli)
    record_id = _submit(cli)

    stored = blob_store.documents["proj_recs"]
    assert [record["id"] for record in stored] == [record_id]
    assert stored[0]["durationMinutes"] == 45
    assert stored[0]["supervisor"] == "Erik Salvador"

    assert cli("login", "-u", "erik", "-p", "pw").exit_code == 0
    result = cli("approve", record_id)
    assert result.exit_code == 0, result.output
    assert blob_store.documents["proj_recs"][0]["status"] == "APPROVED"

    assert cli("login", "-u", "joao", "-p", "pw").exit_code == 0
    result = cli("delete", record_id)
    assert result.exit_code == 1
    assert "may not delete" in result.output


def test_employee_cannot_approve(cli):
    _register_team(cli)
    record_id = _submit(cli)

    result = cli("approve", record_id)

    assert result.exit_code == 1
    assert "may not change" in result.output


def test_invalid_time_is_reported(cli):
    _register_team(cli)

    result = cli(
        "submit",
        "--start-date", "2024-03-01",
        "--start-time", "7pm",
        "--end-date", "2024-03-01",
        "--end-time", "20:00",
        "-m", "Ship loading",
    )

    assert result.exit_code == 1
    assert "Invalid date or time" in result.output


def test_export_and_import_round_trip(cli, blob_store, tmp_path):
    _register_team(cli)
    record_id = _submit(cli)
    backup = tmp_path / "backup.json"
    assert cli("export", "-o", str(backup)).exit_code == 0

    blob_store.documents["proj_recs"] = []
    assert cli("login", "-u", "ailton", "-p", "pw").exit_code == 0
    result = cli("import", str(backup))

    assert result.exit_code == 0, result.output
    assert "Imported 0 new record(s)" in result.output
    assert [record["id"] for record in blob_store.documents["proj_recs"]] == [record_id]
    assert json.loads(backup.read_text(encoding="utf-8"))[0]["id"] == record_id


def test_summary_and_csv_for_coordinator(cli, tmp_path):
    _register_team(cli)
    _submit(cli)
    assert cli("login", "-u", "ailton", "-p", "pw").exit_code == 0

    summary = cli("summary")
    report = tmp_path / "report.csv"
    exported = cli("export-csv", "-o", str(report), "--month", "2024-03")

    assert summary.exit_code == 0, summary.output
    assert "Erik Salvador" in summary.output
    assert exported.exit_code == 0
    assert "João Silva" in report.read_text(encoding="utf-8")


def test_set_webhook_and_logout(cli, blob_store):
    _register_team(cli)

    result = cli("set-webhook", "https://hooks.test/exec")
    assert result.exit_code == 0
    assert "for all devices" in result.output
    assert blob_store.documents["proj_config"] == {"googleSheetUrl": "https://hooks.test/exec"}

    assert cli("logout").exit_code == 0
    assert cli("whoami").exit_code == 1
