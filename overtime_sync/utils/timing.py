"""
Timing utilities for overtime-sync.

Sync cycles are network bound, so the only measurement worth taking is wall
clock time. The orchestrator wraps every cycle in `timed_block` and logs the
duration next to the cycle outcome.

Usage:
    from overtime_sync.utils.timing import timed_block

    with timed_block("refresh") as stats:
        await orchestrator.refresh()

    print(stats.duration_seconds)
"""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Generator


@dataclass
class TimingStats:
    """
    Container for a single timed block.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)

    @property
    def duration_ms(self) -> float:
        return round(self.duration_seconds * 1000, 1)


@contextlib.contextmanager
def timed_block(label: str) -> Generator[TimingStats, None, None]:
    """
    Context manager measuring the wall-clock duration of a block.

    Works across ``await`` points: the measurement includes time the enclosing
    coroutine spent suspended on network I/O.
    """
    stats = TimingStats(label=label)
    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts


__all__ = ["TimingStats", "timed_block"]
