# tests/test_dispatcher.py

from __future__ import annotations

from datetime import timedelta

import pytest

from task_reminder.errors import NoChannelsEnabled
from task_reminder.notify.dispatcher import NotificationDispatcher, format_digest
from task_reminder.tasks.summary import build_summary
from task_reminder.tasks.task_models import Importance, TaskSummary
from task_reminder.tasks.task_store import TaskStore

from .conftest import NOW
from .fakes import FakeChannel


@pytest.mark.asyncio
async def test_zero_enabled_channels_raises() -> None:
    disabled = FakeChannel(name="email", enabled=False)
    dispatcher = NotificationDispatcher([disabled])

    with pytest.raises(NoChannelsEnabled, match="No notification methods are enabled"):
        await dispatcher.send("subject", "body")
    assert disabled.sent == []


@pytest.mark.asyncio
async def test_single_failing_channel_returns_failure_entry() -> None:
    dispatcher = NotificationDispatcher([FakeChannel(name="telegram", fail=True, error="chat not found")])

    result = await dispatcher.send("subject", "body")

    assert len(result.outcomes) == 1
    assert result.outcomes[0].ok is False
    assert result.all_failed is True
    assert result.any_succeeded is False
    assert result.text == "Telegram failed: chat not found"


@pytest.mark.asyncio
async def test_partial_failure_still_succeeds_and_reaches_every_channel() -> None:
    bad = FakeChannel(name="telegram", fail=True)
    good = FakeChannel(name="email")
    off = FakeChannel(name="matrix", enabled=False)
    dispatcher = NotificationDispatcher([bad, good, off])

    result = await dispatcher.send("Task Reminder: x", "hello")

    assert result.any_succeeded is True
    assert result.all_failed is False
    assert [o.channel for o in result.failures()] == ["telegram"]
    assert result.text.splitlines() == ["Telegram failed: boom", "Email sent successfully"]
    assert len(bad.sent) == 1
    assert good.sent[0].subject == "Task Reminder: x"
    assert good.sent[0].body == "hello"
    assert off.sent == []


@pytest.mark.asyncio
async def test_send_digest_uses_summary_subject(channel: FakeChannel, dispatcher: NotificationDispatcher) -> None:
    summary = TaskSummary(total=0, active=0, completed=0, overdue=0, generated_at=NOW)

    result = await dispatcher.send_digest(summary)

    assert result.any_succeeded
    assert channel.sent[0].subject == "Tasks Summary - 2024-12-17 12:00"
    assert "✅ All done! No active tasks." in channel.sent[0].body


def test_digest_template_sections(store: TaskStore) -> None:
    later = store.create(description="Later thing", reminder_at=NOW + timedelta(hours=5))
    store.create(description="Sooner thing", reminder_at=NOW + timedelta(hours=1), importance=Importance.URGENT)
    store.create(description="Old thing", reminder_at=NOW - timedelta(hours=2))
    done = store.create(description="Done thing", reminder_at=NOW - timedelta(hours=3))
    store.set_completed(done.id, True)

    text = format_digest(build_summary(store, NOW))

    assert text.startswith("📋 **TASKS SUMMARY**")
    assert "• Total tasks: 4" in text
    assert "• Active: 3" in text
    assert "• Completed: 1" in text
    assert "• Overdue: 1" in text
    assert "🔴 **HIGH PRIORITY TASKS:**" in text
    assert "[URGENT] Sooner thing" in text
    assert "📅 **UPCOMING TASKS (Next 24 hours):**" in text
    upcoming = text.split("UPCOMING TASKS")[1]
    assert upcoming.index("Sooner thing") < upcoming.index(later.title)
    assert "All done!" not in text
