# src/task_reminder/tasks/task_models.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum

from ..errors import ValidationError

# Canonical storage format: ISO local date-time, no zone, second precision.
TS_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Date, "T", then hours and minutes; seconds, fractions and an offset are optional.
_TS_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?")

TITLE_MAX_WORDS = 7
TITLE_MAX_CHARS = 50


class Recurrence(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: str | None) -> Recurrence:
        """Parse user input. Blank means no recurrence."""
        if raw is None or not raw.strip():
            return cls.NONE
        value = raw.strip().lower()
        # NONE is the absence of a rule, not something a user picks.
        if value != cls.NONE.value:
            try:
                return cls(value)
            except ValueError:
                pass
        raise ValidationError("Invalid recurrence. Must be one of: DAILY, WEEKLY, MONTHLY")

    @classmethod
    def from_db(cls, raw: str | None) -> Recurrence:
        try:
            return cls.parse(raw)
        except ValidationError:
            return cls.NONE

    def to_db(self) -> str | None:
        return None if self is Recurrence.NONE else self.value.upper()


class Importance(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def parse(cls, raw: str | None) -> Importance:
        if raw is None or not raw.strip():
            return cls.MEDIUM
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValidationError(
                "Invalid importance. Must be one of: LOW, MEDIUM, HIGH, URGENT"
            ) from None

    @classmethod
    def from_db(cls, raw: str | None) -> Importance:
        try:
            return cls.parse(raw)
        except ValidationError:
            return cls.MEDIUM

    def to_db(self) -> str:
        return self.value.upper()


HIGH_PRIORITY = (Importance.HIGH, Importance.URGENT)


def format_ts(ts: datetime) -> str:
    return ts.replace(microsecond=0).strftime(TS_FORMAT)


def parse_ts(raw: str) -> datetime:
    """
    Parse a stored or user-supplied local timestamp.

    Accepts ISO local date-time (YYYY-MM-DDTHH:MM[:SS[.ffffff]]). A bare date
    or a space separator is rejected. Zone-aware input is rejected too: all
    timestamps are server-local.
    """
    try:
        text = raw.strip()
        if not _TS_RE.fullmatch(text):
            raise ValueError(text)
        ts = datetime.fromisoformat(text)
    except (AttributeError, ValueError):
        raise ValidationError(
            "Invalid date format. Use ISO format: 2024-12-17T15:30:00"
        ) from None
    if ts.tzinfo is not None:
        raise ValidationError("Timestamps must be local time without a UTC offset")
    return ts


def parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except (AttributeError, ValueError):
        raise ValidationError("Invalid date format. Use ISO format: 2024-12-17") from None


def title_from_description(description: str) -> str:
    """First few words of the description, capped for display."""
    words = re.split(r"\s+", description.strip())
    title = " ".join(words[:TITLE_MAX_WORDS])
    if len(title) > TITLE_MAX_CHARS:
        return title[: TITLE_MAX_CHARS - 3] + "..."
    return title


@dataclass(slots=True)
class Task:
    id: int
    title: str
    description: str
    reminder_at: datetime
    recurrence: Recurrence
    importance: Importance
    completed: bool
    created_at: datetime
    updated_at: datetime

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not Recurrence.NONE

    @property
    def is_high_priority(self) -> bool:
        return self.importance in HIGH_PRIORITY


@dataclass(slots=True)
class NotificationSchedule:
    id: int
    interval_minutes: int
    enabled: bool
    last_sent_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def is_due(self, now: datetime) -> bool:
        """Whole elapsed minutes since the last digest reached the interval."""
        if not self.enabled:
            return False
        if self.last_sent_at is None:
            return True
        elapsed_minutes = int((now - self.last_sent_at).total_seconds() // 60)
        return elapsed_minutes >= self.interval_minutes


@dataclass(slots=True)
class TaskSummary:
    total: int
    active: int
    completed: int
    overdue: int
    generated_at: datetime
    upcoming: list[Task] = field(default_factory=list)
    high_priority: list[Task] = field(default_factory=list)
