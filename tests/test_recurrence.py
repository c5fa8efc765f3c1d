# tests/test_recurrence.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from task_reminder.errors import ValidationError
from task_reminder.tasks.recurrence import add_months, next_occurrence
from task_reminder.tasks.task_models import (
    Importance,
    Recurrence,
    parse_ts,
    title_from_description,
)


def test_daily_and_weekly_add_fixed_spans() -> None:
    ts = datetime(2024, 3, 9, 8, 30)
    assert next_occurrence(ts, Recurrence.DAILY) == ts + timedelta(days=1)
    assert next_occurrence(ts, Recurrence.WEEKLY) == ts + timedelta(days=7)


def test_monthly_clamps_to_last_day_in_leap_year() -> None:
    assert next_occurrence(datetime(2024, 1, 31, 10, 0), Recurrence.MONTHLY) == datetime(2024, 2, 29, 10, 0)


def test_monthly_clamps_in_non_leap_year_and_rolls_year() -> None:
    assert add_months(datetime(2023, 1, 31, 9, 15), 1) == datetime(2023, 2, 28, 9, 15)
    assert add_months(datetime(2024, 12, 15, 7, 0), 1) == datetime(2025, 1, 15, 7, 0)
    assert add_months(datetime(2024, 3, 31), 1) == datetime(2024, 4, 30)


@pytest.mark.parametrize("recurrence", [Recurrence.DAILY, Recurrence.WEEKLY, Recurrence.MONTHLY])
def test_repeated_application_is_strictly_increasing(recurrence: Recurrence) -> None:
    ts = datetime(2024, 1, 31, 23, 59, 59)
    seen = [ts]
    for _ in range(14):
        ts = next_occurrence(ts, recurrence)
        assert ts > seen[-1]
        seen.append(ts)
    assert len(set(seen)) == len(seen)


def test_none_has_no_next_occurrence() -> None:
    with pytest.raises(ValueError):
        next_occurrence(datetime(2024, 1, 1), Recurrence.NONE)


def test_enum_parsing_is_case_insensitive_and_strict() -> None:
    assert Recurrence.parse("weekly") is Recurrence.WEEKLY
    assert Recurrence.parse("MONTHLY") is Recurrence.MONTHLY
    assert Recurrence.parse("") is Recurrence.NONE
    assert Recurrence.parse(None) is Recurrence.NONE
    assert Importance.parse("Urgent") is Importance.URGENT
    assert Importance.parse(None) is Importance.MEDIUM

    with pytest.raises(ValidationError, match="Invalid recurrence"):
        Recurrence.parse("hourly")
    with pytest.raises(ValidationError, match="Invalid recurrence"):
        Recurrence.parse("none")
    with pytest.raises(ValidationError, match="Invalid importance"):
        Importance.parse("critical")


def test_storage_encoding() -> None:
    assert Recurrence.NONE.to_db() is None
    assert Recurrence.DAILY.to_db() == "DAILY"
    assert Recurrence.from_db(None) is Recurrence.NONE
    assert Recurrence.from_db("garbage") is Recurrence.NONE
    assert Importance.HIGH.to_db() == "HIGH"
    assert Importance.from_db("garbage") is Importance.MEDIUM


def test_parse_ts_accepts_local_iso_only() -> None:
    assert parse_ts("2024-12-17T15:30:00") == datetime(2024, 12, 17, 15, 30)
    assert parse_ts("2024-12-17T15:30") == datetime(2024, 12, 17, 15, 30)

    with pytest.raises(ValidationError, match="Invalid date format"):
        parse_ts("17.12.2024 15:30")
    with pytest.raises(ValidationError, match="Invalid date format"):
        parse_ts("2024-12-17")
    with pytest.raises(ValidationError, match="Invalid date format"):
        parse_ts("2024-12-17 15:30:00")
    with pytest.raises(ValidationError):
        parse_ts("2024-12-17T15:30:00+03:00")


def test_title_from_description() -> None:
    assert title_from_description("Buy milk") == "Buy milk"
    assert title_from_description("one two three four five six seven eight nine") == (
        "one two three four five six seven"
    )

    long_words = "Supercalifragilistic expialidocious antidisestablishmentarianism words here"
    title = title_from_description(long_words)
    assert len(title) == 50
    assert title.endswith("...")
