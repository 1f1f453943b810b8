"""
Synthetic backup generator for overtime-sync.

Produces a deterministic JSON backup of pseudo-random overtime records that
can be fed to `overtime-sync import`, for demos and for exercising the merge
path with realistic volumes.
"""

from __future__ import annotations

import random
import string
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import typer

from overtime_sync.backup import export_json
from overtime_sync.domain.models import Location, Record, Status
from overtime_sync.utils.timeutils import calculate_duration

app = typer.Typer(help="Generate a synthetic JSON backup of overtime records.")

SUPERVISORS = {
    "Erik Salvador": ["Audiclei Soares", "Cleverson William", "Axel Carlos", "Bruno Anderson"],
    "Erick William": ["Geovana", "Sergio Murilo"],
    "José Carlos": ["Kleber", "Alison"],
    "Alexandre Papine": ["Colaborador 1", "Colaborador 2"],
}
REASONS = ["Ship loading", "Inventory count", "Equipment failure", "Covering absence"]
_ID_ALPHABET = string.ascii_lowercase + string.digits


def _generate_records(count: int, seed: int, coordinator: str = "Ailton Souza") -> list[Record]:
    rng = random.Random(seed)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    records: list[Record] = []
    for index in range(count):
        supervisor = rng.choice(sorted(SUPERVISORS))
        employee = rng.choice(SUPERVISORS[supervisor])
        start = base + timedelta(days=rng.randint(0, 364), hours=rng.randint(16, 22))
        end = start + timedelta(minutes=rng.randint(30, 300))
        created_at = int(start.timestamp() * 1000) + index
        start_date, start_time = start.strftime("%Y-%m-%d"), start.strftime("%H:%M")
        end_date, end_time = end.strftime("%Y-%m-%d"), end.strftime("%H:%M")
        records.append(
            Record(
                id=f"rec_{created_at}_" + "".join(rng.choice(_ID_ALPHABET) for _ in range(5)),
                created_at=created_at,
                status=rng.choice(list(Status)),
                owner_username=employee.lower().replace(" ", "."),
                coordinator=coordinator,
                supervisor=supervisor,
                employee=employee,
                start_date=start_date,
                start_time=start_time,
                end_date=end_date,
                end_time=end_time,
                location=rng.choice(list(Location)).value,
                reason=rng.choice(REASONS),
                duration_minutes=calculate_duration(start_date, start_time, end_date, end_time),
            )
        )
    return records


@app.command()
def main(
    count: int = typer.Option(
        100,
        "--count",
        "-n",
        help="Number of records to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional output path (if omitted, the backup is printed).",
    ),
) -> None:
    """
    Generate a synthetic backup and write it to a file or stdout.
    """
    text = export_json(_generate_records(count, seed))
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.echo(f"Wrote {count:,} records -> {output} (seed={seed})", err=True)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
