"""
Manual backup channel and spreadsheet export.

A backup is the whole record collection as pretty-printed JSON that a user can
copy somewhere and paste back later. Importing is all-or-nothing: a payload
that fails validation is rejected before anything is merged.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date
from typing import Iterable, List

from pydantic import ValidationError

from overtime_sync.domain.models import Record, dump_records, parse_records
from overtime_sync.errors import ImportValidationError

CSV_HEADERS = [
    "Start date",
    "Start time",
    "End date",
    "End time",
    "Supervisor",
    "Employee",
    "Location",
    "Duration (min)",
    "Status",
    "Reason",
]


def export_json(records: Iterable[Record]) -> str:
    return json.dumps(dump_records(records), indent=2, ensure_ascii=False)


def parse_import(payload: str) -> List[Record]:
    """
    Parse a pasted backup.

    Raises
    ------
    ImportValidationError
        If the text is not JSON, not an array, contains invalid records, or
        repeats an id.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ImportValidationError(f"Backup is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, list):
        raise ImportValidationError("Backup must be a JSON array of records")
    try:
        records = parse_records(data)
    except ValidationError as exc:
        raise ImportValidationError(
            f"Backup contains {exc.error_count()} invalid field(s)"
        ) from exc

    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            raise ImportValidationError(f"Backup repeats record id '{record.id}'")
        seen.add(record.id)
    return records


def _display_date(value: str) -> str:
    try:
        return date.fromisoformat(value).strftime("%d/%m/%Y")
    except ValueError:
        return value


def export_csv(records: Iterable[Record]) -> str:
    """
    Render records as CSV text.

    Starts with a UTF-8 byte order mark so spreadsheet tools pick the right
    encoding for accented names.
    """
    buffer = io.StringIO()
    buffer.write("\ufeff")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(
            [
                _display_date(record.start_date),
                record.start_time,
                _display_date(record.end_date),
                record.end_time,
                record.supervisor,
                record.employee,
                record.location,
                record.duration_minutes,
                record.status.value,
                record.reason,
            ]
        )
    return buffer.getvalue()


__all__ = ["CSV_HEADERS", "export_csv", "export_json", "parse_import"]
