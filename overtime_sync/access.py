"""
Role-based visibility and permission rules.

Isolation is by convention only: every device holds the full collection and
filters it for display. Coordinators see everything, supervisors see the
records filed under their name, employees see what they submitted.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from overtime_sync.domain.models import Record, Role, Status, User


def can_view(user: User, record: Record) -> bool:
    if user.role == Role.COORDINATOR:
        return True
    if user.role == Role.SUPERVISOR:
        return record.supervisor == user.name
    return record.owner_username == user.username


def can_change_status(user: User, record: Record) -> bool:
    """Coordinators, and the supervisor the record is filed under."""
    if user.role == Role.COORDINATOR:
        return True
    return user.role == Role.SUPERVISOR and record.supervisor == user.name


def can_delete(user: User, record: Record) -> bool:
    """Owners may withdraw their own pending records; coordinators may delete any."""
    if user.role == Role.COORDINATOR:
        return True
    return record.owner_username == user.username and record.status == Status.PENDING


def _in_month(record: Record, month: str) -> bool:
    try:
        start = date.fromisoformat(record.start_date)
    except ValueError:
        return False
    return f"{start.year:04d}-{start.month:02d}" == month


def visible_records(
    user: User,
    records: Iterable[Record],
    employee: Optional[str] = None,
    month: Optional[str] = None,
) -> List[Record]:
    """
    Records ``user`` may see, optionally filtered.

    Parameters
    ----------
    employee : str | None
        Case-insensitive substring of the employee name.
    month : str | None
        ``YYYY-MM``; matches on the start date.
    """
    needle = (employee or "").lower()
    return [
        record
        for record in records
        if can_view(user, record)
        and needle in record.employee.lower()
        and (not month or _in_month(record, month))
    ]


def dashboard_records(user: User, records: Iterable[Record]) -> List[Record]:
    """Records feeding the dashboard; employees have no dashboard."""
    if user.role == Role.EMPLOYEE:
        return []
    return [record for record in records if can_view(user, record)]


__all__ = [
    "can_change_status",
    "can_delete",
    "can_view",
    "dashboard_records",
    "visible_records",
]
