from __future__ import annotations

import pytest

from overtime_sync.utils.timeutils import calculate_duration, format_duration


@pytest.mark.parametrize(
    ("start_date", "start_time", "end_date", "end_time", "expected"),
    [
        ("2024-03-01", "18:00", "2024-03-01", "20:30", 150),
        ("2024-03-01", "23:30", "2024-03-02", "00:15", 45),
        ("2024-03-01", "08:00", "2024-03-01", "08:00", 0),
        ("2024-03-01", "20:00", "2024-03-01", "18:00", 0),
        ("2024-03-01", "18:00:00", "2024-03-01", "18:01:59", 1),
    ],
)
def test_calculate_duration(start_date, start_time, end_date, end_time, expected):
    assert calculate_duration(start_date, start_time, end_date, end_time) == expected


def test_calculate_duration_rejects_malformed_input():
    with pytest.raises(ValueError):
        calculate_duration("01/03/2024", "18:00", "2024-03-01", "20:00")


@pytest.mark.parametrize(("minutes", "expected"), [(0, "0:00"), (45, "0:45"), (90, "1:30"), (-5, "0:00")])
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected
