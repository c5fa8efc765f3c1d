# src/task_reminder/tasks/recurrence.py

"""Next-occurrence arithmetic for recurring tasks. Pure, no I/O."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from .task_models import Recurrence


def add_months(ts: datetime, months: int) -> datetime:
    """
    Calendar-aware month addition.

    The day is clamped to the last valid day of the target month,
    so Jan 31 + 1 month is Feb 28 (or Feb 29 in a leap year).
    """
    month_index = ts.month - 1 + months
    year = ts.year + month_index // 12
    month = month_index % 12 + 1
    _, last_dom = calendar.monthrange(year, month)
    return ts.replace(year=year, month=month, day=min(ts.day, last_dom))


def next_occurrence(current: datetime, recurrence: Recurrence) -> datetime:
    if recurrence is Recurrence.DAILY:
        return current + timedelta(days=1)
    if recurrence is Recurrence.WEEKLY:
        return current + timedelta(weeks=1)
    if recurrence is Recurrence.MONTHLY:
        return add_months(current, 1)
    raise ValueError(f"Task without recurrence has no next occurrence: {recurrence!r}")
