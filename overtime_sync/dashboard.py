"""
Dashboard totals.

Aggregates a (pre-filtered) record collection into the figures the dashboard
shows: total minutes, minutes per supervisor, submissions per location and per
status.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable

from overtime_sync.domain.models import Location, Record, Status


@dataclass
class DashboardSummary:
    record_count: int = 0
    total_minutes: int = 0
    minutes_by_supervisor: Dict[str, int] = field(default_factory=dict)
    count_by_location: Dict[str, int] = field(default_factory=dict)
    count_by_status: Dict[str, int] = field(default_factory=dict)

    @property
    def hours_by_supervisor(self) -> Dict[str, float]:
        return {name: round(minutes / 60, 2) for name, minutes in self.minutes_by_supervisor.items()}


def summarize(records: Iterable[Record]) -> DashboardSummary:
    minutes: Counter[str] = Counter()
    # Known locations are always listed, even with zero submissions.
    locations: Counter[str] = Counter({location.value: 0 for location in Location})
    statuses: Counter[str] = Counter({status.value: 0 for status in Status})
    count = 0
    for record in records:
        count += 1
        minutes[record.supervisor] += record.duration_minutes
        locations[record.location] += 1
        statuses[record.status.value] += 1

    return DashboardSummary(
        record_count=count,
        total_minutes=sum(minutes.values()),
        minutes_by_supervisor=dict(minutes),
        count_by_location=dict(locations),
        count_by_status=dict(statuses),
    )


__all__ = ["DashboardSummary", "summarize"]
