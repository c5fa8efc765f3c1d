# src/task_reminder/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from datetime import date, datetime, timedelta
from pathlib import Path

from ..errors import StorageError, ValidationError
from .clock import Clock, make_clock
from .recurrence import next_occurrence
from .task_models import (
    HIGH_PRIORITY,
    Importance,
    NotificationSchedule,
    Recurrence,
    Task,
    format_ts,
    parse_ts,
    title_from_description,
)

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    Owns two tables:
    - tasks: reminder items
    - notification_schedules: the digest schedule (at most one live row)

    Thread-safety:
    - each method opens its own SQLite connection and commits its own transaction
    - no operation spans several tasks atomically

    Timestamps are stored as ISO local date-time text. Rows whose stored
    timestamps do not parse are skipped by every query (and logged), so one
    corrupt row never breaks a listing.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, clock: Clock | None = None) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or make_clock()
        self._ensure_schema()
        try:
            total = self.count()
        except StorageError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
            conn.row_factory = sqlite3.Row
            self._configure_conn(conn)
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"{type(e).__name__}: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    reminder_at TEXT NOT NULL,
                    recurrence TEXT,
                    importance TEXT NOT NULL DEFAULT 'MEDIUM',
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notification_schedules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    interval_minutes INTEGER NOT NULL,
                    is_enabled INTEGER NOT NULL DEFAULT 1,
                    last_sent_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_completed_reminder "
                "ON tasks(is_completed, reminder_at)"
            )
            conn.commit()

    def _row_to_task(self, row: sqlite3.Row) -> Task | None:
        try:
            reminder_at = parse_ts(row["reminder_at"])
            created_at = parse_ts(row["created_at"])
            updated_at = parse_ts(row["updated_at"])
        except ValidationError:
            logger.warning("Skipping task id=%s with malformed timestamp %r", row["id"], row["reminder_at"])
            return None
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            reminder_at=reminder_at,
            recurrence=Recurrence.from_db(row["recurrence"]),
            importance=Importance.from_db(row["importance"]),
            completed=bool(row["is_completed"]),
            created_at=created_at,
            updated_at=updated_at,
        )

    def _rows_to_tasks(self, rows: Iterable[sqlite3.Row]) -> list[Task]:
        out: list[Task] = []
        for r in rows:
            task = self._row_to_task(r)
            if task is not None:
                out.append(task)
        return out

    @staticmethod
    def _row_to_schedule(row: sqlite3.Row) -> NotificationSchedule:
        last_sent = row["last_sent_at"]
        return NotificationSchedule(
            id=int(row["id"]),
            interval_minutes=int(row["interval_minutes"]),
            enabled=bool(row["is_enabled"]),
            last_sent_at=parse_ts(last_sent) if last_sent else None,
            created_at=parse_ts(row["created_at"]),
            updated_at=parse_ts(row["updated_at"]),
        )

    def _select(self, where: str = "", params: tuple = ()) -> list[Task]:
        sql = "SELECT * FROM tasks"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY id ASC"
        with self._conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return self._rows_to_tasks(rows)

    def _now_str(self) -> str:
        return format_ts(self._clock())

    # ---- tasks: create / read ----

    def count(self) -> int:
        with self._conn() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def create(
        self,
        *,
        description: str,
        reminder_at: datetime,
        title: str | None = None,
        recurrence: Recurrence = Recurrence.NONE,
        importance: Importance = Importance.MEDIUM,
    ) -> Task:
        if not description or not description.strip():
            raise ValidationError("description is required")

        final_title = title.strip() if title and title.strip() else title_from_description(description)
        now = self._now_str()

        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    title, description, reminder_at, recurrence, importance,
                    is_completed, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    final_title,
                    description.strip(),
                    format_ts(reminder_at),
                    recurrence.to_db(),
                    importance.to_db(),
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise StorageError("SQLite did not return lastrowid for tasks insert")

        task_id = int(rowid)
        logger.debug(
            "Task added id=%s reminder_at=%s recurrence=%s importance=%s",
            task_id,
            format_ts(reminder_at),
            recurrence.value,
            importance.value,
        )
        return Task(
            id=task_id,
            title=final_title,
            description=description.strip(),
            reminder_at=reminder_at.replace(microsecond=0),
            recurrence=recurrence,
            importance=importance,
            completed=False,
            created_at=parse_ts(now),
            updated_at=parse_ts(now),
        )

    def get_by_id(self, task_id: int) -> Task | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return self._row_to_task(row) if row else None

    def list_all(self) -> list[Task]:
        return self._select()

    def list_by_completed(self, completed: bool) -> list[Task]:
        return self._select("is_completed = ?", (1 if completed else 0,))

    def list_by_importance(self, importance: Importance) -> list[Task]:
        return self._select("importance = ?", (importance.to_db(),))

    def list_by_date(self, day: date) -> list[Task]:
        """Tasks whose reminder falls on `day` (date component only)."""
        return [t for t in self.list_all() if t.reminder_at.date() == day]

    def list_due(self, now: datetime) -> list[Task]:
        """
        Tasks ready to be processed: not completed and reminder_at <= now.

        Boundary is inclusive. No ordering guarantee.
        """
        return [t for t in self.list_by_completed(False) if t.reminder_at <= now]

    def list_overdue(self, now: datetime) -> list[Task]:
        return [t for t in self.list_by_completed(False) if t.reminder_at < now]

    def list_upcoming(self, now: datetime, horizon_hours: int = 24) -> list[Task]:
        """Open tasks strictly inside (now, now + horizon), soonest first."""
        until = now + timedelta(hours=horizon_hours)
        out = [t for t in self.list_by_completed(False) if now < t.reminder_at < until]
        out.sort(key=lambda t: t.reminder_at)
        return out

    def list_high_priority(self) -> list[Task]:
        placeholders = ",".join("?" for _ in HIGH_PRIORITY)
        return self._select(
            f"is_completed = 0 AND importance IN ({placeholders})",
            tuple(i.to_db() for i in HIGH_PRIORITY),
        )

    # ---- tasks: mutations ----

    def delete(self, task_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            return cur.rowcount > 0

    def set_completed(self, task_id: int, completed: bool) -> bool:
        """
        Manual completion toggle.

        Completing a recurring task also clears its recurrence: a recurring
        task is never stored as completed.
        """
        now = self._now_str()
        with self._conn() as conn:
            if completed:
                cur = conn.execute(
                    "UPDATE tasks SET is_completed = 1, recurrence = NULL, updated_at = ? WHERE id = ?",
                    (now, int(task_id)),
                )
            else:
                cur = conn.execute(
                    "UPDATE tasks SET is_completed = 0, updated_at = ? WHERE id = ?",
                    (now, int(task_id)),
                )
            conn.commit()
            return cur.rowcount > 0

    def mark_processed(self, task: Task, now: datetime) -> bool:
        """
        Record that a due task was delivered.

        - no recurrence: completed = true, reminder_at unchanged
        - recurrence:    reminder_at advances to the next occurrence, completed stays false

        Returns False if the row no longer exists.
        """
        updated_at = format_ts(now)
        with self._conn() as conn:
            if not task.is_recurring:
                cur = conn.execute(
                    "UPDATE tasks SET is_completed = 1, updated_at = ? WHERE id = ?",
                    (updated_at, int(task.id)),
                )
            else:
                next_at = next_occurrence(task.reminder_at, task.recurrence)
                cur = conn.execute(
                    "UPDATE tasks SET reminder_at = ?, updated_at = ? WHERE id = ?",
                    (format_ts(next_at), updated_at, int(task.id)),
                )
            conn.commit()
            return cur.rowcount > 0

    # ---- notification schedule ----

    def set_schedule(self, interval_minutes: int, enabled: bool = True) -> NotificationSchedule:
        """Replace the digest schedule (we keep only one row)."""
        now = self._now_str()
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM notification_schedules")
            cur.execute(
                """
                INSERT INTO notification_schedules(
                    interval_minutes, is_enabled, last_sent_at, created_at, updated_at
                )
                VALUES (?, ?, NULL, ?, ?)
                """,
                (int(interval_minutes), 1 if enabled else 0, now, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise StorageError("SQLite did not return lastrowid for schedule insert")

        logger.info("Notification schedule set interval=%s enabled=%s", interval_minutes, enabled)
        return NotificationSchedule(
            id=int(rowid),
            interval_minutes=int(interval_minutes),
            enabled=enabled,
            last_sent_at=None,
            created_at=parse_ts(now),
            updated_at=parse_ts(now),
        )

    def get_schedule(self) -> NotificationSchedule | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM notification_schedules ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        try:
            return self._row_to_schedule(row)
        except ValidationError as e:
            raise StorageError(f"Corrupt notification schedule row: {e}") from e

    def update_last_sent(self, schedule_id: int, now: datetime) -> bool:
        ts = format_ts(now)
        with self._conn() as conn:
            cur = conn.execute(
                "UPDATE notification_schedules SET last_sent_at = ?, updated_at = ? WHERE id = ?",
                (ts, ts, int(schedule_id)),
            )
            conn.commit()
            return cur.rowcount > 0

    def set_schedule_enabled(self, schedule_id: int, enabled: bool) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "UPDATE notification_schedules SET is_enabled = ?, updated_at = ? WHERE id = ?",
                (1 if enabled else 0, self._now_str(), int(schedule_id)),
            )
            conn.commit()
            return cur.rowcount > 0
