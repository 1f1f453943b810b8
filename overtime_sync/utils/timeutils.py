"""
Date/time helpers for overtime records.

Both instants are parsed as naive wall-clock datetimes, so the result does not
depend on the host timezone: a shift from 23:30 to 00:15 the next day is always
45 minutes.
"""

from __future__ import annotations

from datetime import date, datetime, time


def _parse_instant(day: str, clock: str) -> datetime:
    return datetime.combine(date.fromisoformat(day), time.fromisoformat(clock))


def calculate_duration(start_date: str, start_time: str, end_date: str, end_time: str) -> int:
    """
    Return the whole minutes elapsed between start and end.

    Dates are ``YYYY-MM-DD`` and times ``HH:MM`` (seconds allowed). The result is
    floored and never negative: an end at or before the start yields ``0``.

    Raises
    ------
    ValueError
        If any component cannot be parsed.
    """
    start = _parse_instant(start_date, start_time)
    end = _parse_instant(end_date, end_time)
    elapsed = (end - start).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed // 60)


def format_duration(minutes: int) -> str:
    """Render minutes as ``H:MM`` (e.g. 90 -> ``1:30``)."""
    hours, rest = divmod(max(minutes, 0), 60)
    return f"{hours}:{rest:02d}"


__all__ = ["calculate_duration", "format_duration"]
