# src/task_reminder/tasks/summary.py

from __future__ import annotations

from datetime import datetime

from ..core.ports import TaskRepo
from .task_models import TaskSummary

UPCOMING_HORIZON_HOURS = 24


def build_summary(store: TaskRepo, now: datetime) -> TaskSummary:
    """Aggregate statistics for the digest and for `/summary`."""
    all_tasks = store.list_all()
    completed = sum(1 for t in all_tasks if t.completed)
    return TaskSummary(
        total=len(all_tasks),
        active=len(all_tasks) - completed,
        completed=completed,
        overdue=len(store.list_overdue(now)),
        generated_at=now,
        upcoming=store.list_upcoming(now, UPCOMING_HORIZON_HOURS),
        high_priority=store.list_high_priority(),
    )
