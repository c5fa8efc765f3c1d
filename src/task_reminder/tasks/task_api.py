# src/task_reminder/tasks/task_api.py

from __future__ import annotations

"""
Task service: the command surface exposed to hosts (CLI, tool-calling front-ends).

Every method validates its own input, delegates to the store and returns a
human-readable string. Validation errors come back as "Error: <reason>";
storage and dispatch errors as "Error <doing something>: <reason>".
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ..core.ports import TaskRepo
from ..errors import DispatchError, ReminderError, ValidationError
from .clock import Clock, make_clock
from .summary import build_summary
from .task_models import (
    Importance,
    NotificationSchedule,
    Recurrence,
    Task,
    TaskSummary,
    parse_date,
    parse_ts,
)

if TYPE_CHECKING:
    from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)

STATUS_FILTERS = {"ACTIVE": False, "COMPLETED": True}


def _fmt(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S")


class TaskService:
    def __init__(self, store: TaskRepo, scheduler: Scheduler, *, clock: Clock | None = None) -> None:
        self._store = store
        self._scheduler = scheduler
        self._clock = clock or make_clock()

    def _is_overdue(self, task: Task) -> bool:
        return not task.completed and task.reminder_at < self._clock()

    # ---- tasks ----

    def add(
        self,
        title: str | None,
        description: str,
        reminder_time: str,
        recurrence: str | None = None,
        importance: str = "MEDIUM",
    ) -> str:
        try:
            importance_enum = Importance.parse(importance)
            recurrence_enum = Recurrence.parse(recurrence)
            reminder_at = parse_ts(reminder_time)
            task = self._store.create(
                title=title,
                description=description,
                reminder_at=reminder_at,
                recurrence=recurrence_enum,
                importance=importance_enum,
            )
        except ValidationError as e:
            return f"Error: {e}"
        except ReminderError as e:
            logger.error("add task failed: %s", e)
            return f"Error adding task: {e}"

        logger.info("Task #%s created for %s", task.id, _fmt(task.reminder_at))
        lines = [
            "✅ Task created successfully!",
            "",
            f"ID: {task.id}",
            f"Title: {task.title}",
            f"Description: {task.description}",
            f"Importance: {task.importance.to_db()}",
            f"Reminder date/time: {_fmt(task.reminder_at)}",
        ]
        if task.is_recurring:
            lines.append(f"Recurrence: {task.recurrence.to_db()}")
        lines.append("Status: Active")
        lines.append(f"Created at: {_fmt(task.created_at)}")
        return "\n".join(lines)

    def list_tasks(self, status: str | None = None) -> str:
        key = status.strip().upper() if status and status.strip() else None
        if key is not None and key not in STATUS_FILTERS:
            return "Error: Invalid status. Must be one of: ACTIVE, COMPLETED"

        try:
            tasks = self._store.list_all() if key is None else self._store.list_by_completed(STATUS_FILTERS[key])
        except ReminderError as e:
            return f"Error listing tasks: {e}"

        if not tasks:
            return "No tasks found."

        lines = [f"📋 Tasks ({len(tasks)} total)", ""]
        for t in tasks:
            overdue = " ⚠️ OVERDUE" if self._is_overdue(t) else ""
            done = " ✅" if t.completed else ""
            lines.append(f"#{t.id} - {t.title}{overdue}{done}")
            lines.append(
                f"  Importance: {t.importance.to_db()} | Status: {'Completed' if t.completed else 'Active'}"
            )
            lines.append(f"  Reminder: {_fmt(t.reminder_at)}")
            if t.is_recurring:
                lines.append(f"  Recurrence: {t.recurrence.to_db()}")
            lines.append(f"  {t.description}")
            lines.append("")
        return "\n".join(lines).rstrip()

    def get(self, task_id: int) -> str:
        try:
            task = self._store.get_by_id(task_id)
        except ReminderError as e:
            return f"Error getting task: {e}"

        if task is None:
            return f"Task with ID {task_id} not found."

        lines = [
            "📌 Task Details",
            "",
            f"ID: {task.id}",
            f"Title: {task.title}",
            f"Description: {task.description}",
            f"Importance: {task.importance.to_db()}",
            f"Status: {'Completed' if task.completed else 'Active'}",
            f"Reminder date/time: {_fmt(task.reminder_at)}",
        ]
        if task.is_recurring:
            lines.append(f"Recurrence: {task.recurrence.to_db()}")
        if self._is_overdue(task):
            lines.append("⚠️ This task is OVERDUE")
        lines.append(f"Created at: {_fmt(task.created_at)}")
        lines.append(f"Updated at: {_fmt(task.updated_at)}")
        return "\n".join(lines)

    def list_for_date(self, day: str) -> str:
        try:
            parsed = parse_date(day)
            tasks = self._store.list_by_date(parsed)
        except ValidationError as e:
            return f"Error: {e}"
        except ReminderError as e:
            return f"Error getting tasks for date: {e}"

        if not tasks:
            return f"No tasks found for date {day}."

        lines = [f"📅 Tasks for {day} ({len(tasks)} total)", ""]
        for t in tasks:
            lines.append(f"#{t.id} - {t.title}")
            lines.append(f"  Time: {t.reminder_at.strftime('%H:%M:%S')}")
            lines.append(f"  Importance: {t.importance.to_db()}")
            if t.is_recurring:
                lines.append(f"  Recurrence: {t.recurrence.to_db()}")
            lines.append(f"  {t.description}")
            lines.append("")
        return "\n".join(lines).rstrip()

    def list_by_importance(self, importance: str) -> str:
        try:
            level = Importance.parse(importance)
            tasks = self._store.list_by_importance(level)
        except ValidationError as e:
            return f"Error: {e}"
        except ReminderError as e:
            return f"Error getting tasks by importance: {e}"

        if not tasks:
            return f"No tasks found with importance {level.to_db()}."

        lines = [f"📋 Tasks with importance {level.to_db()} ({len(tasks)} total)", ""]
        for t in tasks:
            done = " ✅" if t.completed else ""
            lines.append(f"#{t.id} - {t.title}{done}")
            lines.append(f"  Reminder: {_fmt(t.reminder_at)}")
            if t.is_recurring:
                lines.append(f"  Recurrence: {t.recurrence.to_db()}")
            lines.append(f"  {t.description}")
            lines.append("")
        return "\n".join(lines).rstrip()

    def complete(self, task_id: int) -> str:
        try:
            ok = self._store.set_completed(task_id, True)
        except ReminderError as e:
            return f"Error completing task: {e}"
        return f"✅ Task #{task_id} marked as completed" if ok else f"Task with ID {task_id} not found."

    def delete(self, task_id: int) -> str:
        try:
            ok = self._store.delete(task_id)
        except ReminderError as e:
            return f"Error deleting task: {e}"
        return f"🗑️ Task #{task_id} deleted successfully" if ok else f"Task with ID {task_id} not found."

    # ---- summary ----

    def summary(self) -> TaskSummary:
        return build_summary(self._store, self._clock())

    def summarize(self) -> str:
        try:
            s = self.summary()
        except ReminderError as e:
            return f"Error generating summary: {e}"

        lines = [
            "📊 TASKS SUMMARY",
            f"Generated at: {_fmt(s.generated_at)}",
            "",
            "Statistics:",
            f"  • Total tasks: {s.total}",
            f"  • Active: {s.active}",
            f"  • Completed: {s.completed}",
            f"  • Overdue: {s.overdue}",
            "",
        ]
        if s.high_priority:
            lines.append("🔴 HIGH PRIORITY TASKS:")
            for t in s.high_priority:
                lines.append(f"  #{t.id} - [{t.importance.to_db()}] {t.title}")
                lines.append(f"    Reminder: {_fmt(t.reminder_at)}")
            lines.append("")
        if s.upcoming:
            lines.append("📅 UPCOMING TASKS (Next 24 hours):")
            for t in s.upcoming:
                lines.append(f"  #{t.id} - {t.title}")
                lines.append(f"    Reminder: {_fmt(t.reminder_at)}")
            lines.append("")
        if s.active == 0:
            lines.append("✅ All done! No active tasks.")
        return "\n".join(lines).rstrip()

    # ---- digest schedule ----

    def set_schedule(self, interval_minutes: int, enabled: bool = True) -> str:
        if interval_minutes < 1:
            return "Error: Interval must be at least 1 minute"

        try:
            schedule = self._store.set_schedule(interval_minutes, enabled)
            if enabled and not self._scheduler.is_running():
                self._scheduler.start()
        except (ReminderError, RuntimeError) as e:
            logger.error("set schedule failed: %s", e)
            return f"Error setting notification schedule: {e}"

        return "\n".join(
            [
                "⏰ Notification schedule configured successfully!",
                "",
                f"Interval: Every {schedule.interval_minutes} minutes",
                f"Status: {'Enabled' if schedule.enabled else 'Disabled'}",
                f"Created at: {_fmt(schedule.created_at)}",
            ]
        )

    def get_schedule(self) -> str:
        try:
            schedule = self._store.get_schedule()
        except ReminderError as e:
            return f"Error getting notification schedule: {e}"

        if schedule is None:
            return "No notification schedule configured. Use /schedule <minutes> to create one."
        return _format_schedule_info(schedule)

    async def send_test_digest(self) -> str:
        try:
            result = await self._scheduler.send_digest_now()
        except DispatchError as e:
            return f"Failed to send test notification: {e}"
        except ReminderError as e:
            return f"Error sending test notification: {e}"

        if not result.any_succeeded:
            return f"Failed to send test notification:\n{result.text}"
        return f"Test notification sent successfully:\n{result.text}"


def _format_schedule_info(schedule: NotificationSchedule) -> str:
    lines = [
        "⏰ Notification Schedule",
        "",
        f"ID: {schedule.id}",
        f"Interval: Every {schedule.interval_minutes} minutes",
        f"Status: {'✅ Enabled' if schedule.enabled else '❌ Disabled'}",
    ]
    if schedule.last_sent_at is not None:
        lines.append(f"Last notification sent: {_fmt(schedule.last_sent_at)}")
    else:
        lines.append("No notifications sent yet")
    lines.append(f"Created at: {_fmt(schedule.created_at)}")
    return "\n".join(lines)
