"""
Utilities package for overtime-sync.

Exports shared helpers for logging, timing, and duration arithmetic.
Keep this package lightweight and free of sync logic.
"""

from overtime_sync.utils.logging import configure_logging, get_logger
from overtime_sync.utils.timeutils import calculate_duration, format_duration
from overtime_sync.utils.timing import TimingStats, timed_block

__all__ = [
    "configure_logging",
    "get_logger",
    "calculate_duration",
    "format_duration",
    "TimingStats",
    "timed_block",
]
