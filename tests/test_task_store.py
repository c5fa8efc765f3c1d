# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from task_reminder.errors import StorageError, ValidationError
from task_reminder.tasks.task_models import Importance, Recurrence
from task_reminder.tasks.task_store import TaskStore

from .conftest import NOW


def test_create_and_get_roundtrip(store: TaskStore) -> None:
    task = store.create(
        description="Call the dentist about the appointment next week please",
        reminder_at=NOW + timedelta(hours=2),
        importance=Importance.HIGH,
    )

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded == task
    assert loaded.title == "Call the dentist about the appointment next"
    assert loaded.completed is False
    assert loaded.recurrence is Recurrence.NONE
    assert loaded.created_at == NOW
    assert store.count() == 1


def test_create_requires_description(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.create(description="   ", reminder_at=NOW)


def test_get_missing_returns_none(store: TaskStore) -> None:
    assert store.get_by_id(999) is None


def test_list_due_boundary_is_inclusive(store: TaskStore) -> None:
    at_now = store.create(description="at now", reminder_at=NOW)
    later = store.create(description="one second later", reminder_at=NOW + timedelta(seconds=1))
    done = store.create(description="done already", reminder_at=NOW - timedelta(hours=1))
    store.set_completed(done.id, True)

    due_ids = {t.id for t in store.list_due(NOW)}
    assert at_now.id in due_ids
    assert later.id not in due_ids
    assert done.id not in due_ids


def test_mark_processed_completes_one_shot_task(store: TaskStore) -> None:
    task = store.create(description="one shot", reminder_at=NOW - timedelta(minutes=5))

    assert store.mark_processed(task, NOW) is True

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is True
    assert loaded.reminder_at == task.reminder_at


def test_mark_processed_rolls_recurring_task_forward(store: TaskStore) -> None:
    task = store.create(
        description="monthly report",
        reminder_at=datetime(2024, 1, 31, 10, 0),
        recurrence=Recurrence.MONTHLY,
    )

    assert store.mark_processed(task, NOW) is True

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is False
    assert loaded.reminder_at == datetime(2024, 2, 29, 10, 0)
    assert loaded.updated_at == NOW


def test_mark_processed_on_deleted_row_returns_false(store: TaskStore) -> None:
    task = store.create(description="gone", reminder_at=NOW)
    store.delete(task.id)
    assert store.mark_processed(task, NOW) is False


def test_time_based_queries(store: TaskStore) -> None:
    overdue = store.create(description="overdue", reminder_at=NOW - timedelta(hours=1))
    soon = store.create(description="soon", reminder_at=NOW + timedelta(hours=3))
    sooner = store.create(description="sooner", reminder_at=NOW + timedelta(hours=1))
    far = store.create(description="far", reminder_at=NOW + timedelta(hours=30))
    edge = store.create(description="edge", reminder_at=NOW + timedelta(hours=24))

    assert [t.id for t in store.list_overdue(NOW)] == [overdue.id]
    upcoming = [t.id for t in store.list_upcoming(NOW, 24)]
    assert upcoming == [sooner.id, soon.id]
    assert far.id not in upcoming
    assert edge.id not in upcoming


def test_list_by_date_importance_and_completed(store: TaskStore) -> None:
    a = store.create(description="a", reminder_at=datetime(2024, 12, 17, 9, 0), importance=Importance.URGENT)
    b = store.create(description="b", reminder_at=datetime(2024, 12, 18, 9, 0), importance=Importance.LOW)
    c = store.create(description="c", reminder_at=datetime(2024, 12, 17, 23, 59), importance=Importance.HIGH)
    store.set_completed(c.id, True)

    assert [t.id for t in store.list_by_date(date(2024, 12, 17))] == [a.id, c.id]
    assert [t.id for t in store.list_by_importance(Importance.LOW)] == [b.id]
    assert [t.id for t in store.list_high_priority()] == [a.id]
    assert [t.id for t in store.list_by_completed(True)] == [c.id]
    assert [t.id for t in store.list_by_completed(False)] == [a.id, b.id]


def test_manual_completion_clears_recurrence(store: TaskStore) -> None:
    task = store.create(description="water plants", reminder_at=NOW, recurrence=Recurrence.DAILY)

    assert store.set_completed(task.id, True) is True

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is True
    assert loaded.recurrence is Recurrence.NONE
    assert store.set_completed(12345, True) is False


def test_delete(store: TaskStore) -> None:
    task = store.create(description="temp", reminder_at=NOW)
    assert store.delete(task.id) is True
    assert store.delete(task.id) is False
    assert store.list_all() == []


def test_malformed_timestamps_are_skipped(tmp_path: Path, store: TaskStore) -> None:
    good = store.create(description="good", reminder_at=NOW - timedelta(minutes=1))
    with sqlite3.connect(str(tmp_path / "tasks.sqlite3")) as conn:
        conn.execute(
            "INSERT INTO tasks(title, description, reminder_at, recurrence, importance, "
            "is_completed, created_at, updated_at) VALUES (?, ?, ?, NULL, 'MEDIUM', 0, ?, ?)",
            ("bad", "bad", "not-a-date", "2024-12-17T12:00:00", "2024-12-17T12:00:00"),
        )

    assert [t.id for t in store.list_all()] == [good.id]
    assert [t.id for t in store.list_due(NOW)] == [good.id]
    assert store.count() == 2


def test_schedule_keeps_single_row(store: TaskStore) -> None:
    assert store.get_schedule() is None

    first = store.set_schedule(30)
    second = store.set_schedule(60, enabled=False)

    current = store.get_schedule()
    assert current is not None
    assert current.id == second.id != first.id
    assert current.interval_minutes == 60
    assert current.enabled is False
    assert current.last_sent_at is None


def test_update_last_sent_and_toggle(store: TaskStore) -> None:
    schedule = store.set_schedule(60)

    assert store.update_last_sent(schedule.id, NOW) is True
    assert store.set_schedule_enabled(schedule.id, False) is True

    current = store.get_schedule()
    assert current is not None
    assert current.last_sent_at == NOW
    assert current.enabled is False


def test_sqlite_errors_become_storage_errors(tmp_path: Path) -> None:
    # A directory cannot be opened as a database file.
    with pytest.raises(StorageError):
        TaskStore(tmp_path)
