# src/task_reminder/tasks/clock.py

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def make_clock(timezone: str = "Europe/Moscow") -> Clock:
    """
    Server-local wall clock.

    Returns naive datetimes (the zone is implied by configuration), matching
    how timestamps are stored and entered by users.
    """
    zone = ZoneInfo(timezone)

    def now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None, microsecond=0)

    return now
