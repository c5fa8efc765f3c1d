# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from task_reminder.enrich.enricher import TaskEnricher
from task_reminder.notify.dispatcher import NotificationDispatcher
from task_reminder.tasks.task_models import Recurrence
from task_reminder.tasks.task_scheduler import Scheduler
from task_reminder.tasks.task_store import TaskStore

from .conftest import NOW
from .fakes import FakeChannel, FakeClock, FakeTime, FakeWeather


@pytest.mark.asyncio
async def test_tick_completes_past_one_shot_task(
    store: TaskStore, scheduler: Scheduler, channel: FakeChannel
) -> None:
    task = store.create(description="Pay rent", reminder_at=NOW - timedelta(minutes=10))

    await scheduler.run_tick()

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is True
    assert len(channel.sent) == 1
    assert channel.sent[0].subject == "Task Reminder: Pay rent"
    assert channel.sent[0].body.startswith("📌 Pay rent")


@pytest.mark.asyncio
async def test_tick_rolls_weekly_task_forward_by_seven_days(
    store: TaskStore, scheduler: Scheduler, channel: FakeChannel
) -> None:
    original = NOW - timedelta(hours=1)
    task = store.create(description="Team sync", reminder_at=original, recurrence=Recurrence.WEEKLY)

    await scheduler.run_tick()

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is False
    assert loaded.reminder_at == original + timedelta(days=7)
    assert len(channel.sent) == 1


@pytest.mark.asyncio
async def test_digest_sent_once_per_interval(
    store: TaskStore, scheduler: Scheduler, channel: FakeChannel, clock: FakeClock
) -> None:
    store.set_schedule(60, enabled=True)

    await scheduler.run_tick()

    schedule = store.get_schedule()
    assert schedule is not None
    assert schedule.last_sent_at == NOW
    digests = [s for s in channel.sent if s.subject.startswith("Tasks Summary")]
    assert len(digests) == 1

    clock.advance(minutes=1)
    await scheduler.run_tick()

    digests = [s for s in channel.sent if s.subject.startswith("Tasks Summary")]
    assert len(digests) == 1

    clock.advance(minutes=59)
    await scheduler.run_tick()

    digests = [s for s in channel.sent if s.subject.startswith("Tasks Summary")]
    assert len(digests) == 2


@pytest.mark.asyncio
async def test_disabled_digest_is_not_sent(store: TaskStore, scheduler: Scheduler, channel: FakeChannel) -> None:
    store.set_schedule(1, enabled=False)

    await scheduler.run_tick()

    assert channel.sent == []


@pytest.mark.asyncio
async def test_failed_dispatch_leaves_task_due_and_reports_failure(
    store: TaskStore, enricher: TaskEnricher, clock: FakeClock
) -> None:
    failing = FakeChannel(name="telegram", fail=True, error="bot blocked")
    scheduler = Scheduler(store, NotificationDispatcher([failing]), enricher, clock=clock)
    task = store.create(description="Renew passport", reminder_at=NOW - timedelta(days=1))

    await scheduler.run_tick()

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is False
    assert [t.id for t in store.list_due(NOW)] == [task.id]

    subjects = [s.subject for s in failing.sent]
    assert subjects == ["Task Reminder: Renew passport", "Task Notification Failed: Renew passport"]
    assert "❌ Failed to send notification for task:" in failing.sent[1].body
    assert "Error: Telegram failed: bot blocked" in failing.sent[1].body


@pytest.mark.asyncio
async def test_failed_digest_is_retried_next_tick(store: TaskStore, enricher: TaskEnricher, clock: FakeClock) -> None:
    flaky = FakeChannel(name="email", fail=True)
    scheduler = Scheduler(store, NotificationDispatcher([flaky]), enricher, clock=clock)
    store.set_schedule(60)

    await scheduler.run_tick()
    schedule = store.get_schedule()
    assert schedule is not None
    assert schedule.last_sent_at is None

    flaky.fail = False
    clock.advance(minutes=1)
    await scheduler.run_tick()

    schedule = store.get_schedule()
    assert schedule is not None
    assert schedule.last_sent_at == NOW + timedelta(minutes=1)


@pytest.mark.asyncio
async def test_no_channels_enabled_keeps_task_pending(
    store: TaskStore, enricher: TaskEnricher, clock: FakeClock
) -> None:
    scheduler = Scheduler(store, NotificationDispatcher([FakeChannel(enabled=False)]), enricher, clock=clock)
    task = store.create(description="Nobody hears this", reminder_at=NOW)

    await scheduler.run_tick()

    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is False


@pytest.mark.asyncio
async def test_one_bad_task_does_not_block_others(
    store: TaskStore, dispatcher: NotificationDispatcher, channel: FakeChannel, clock: FakeClock
) -> None:
    class ExplodingEnricher(TaskEnricher):
        async def enrich(self, task):
            if "explode" in task.description:
                raise RuntimeError("kaboom")
            return await super().enrich(task)

    scheduler = Scheduler(store, dispatcher, ExplodingEnricher(FakeWeather(), FakeTime()), clock=clock)
    bad = store.create(description="please explode", reminder_at=NOW - timedelta(minutes=2))
    good = store.create(description="stay calm", reminder_at=NOW - timedelta(minutes=1))

    await scheduler.run_tick()

    bad_loaded, good_loaded = store.get_by_id(bad.id), store.get_by_id(good.id)
    assert bad_loaded is not None and bad_loaded.completed is False
    assert good_loaded is not None and good_loaded.completed is True
    assert len(channel.sent) == 1


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_cancels(
    store: TaskStore, scheduler: Scheduler, channel: FakeChannel, caplog: pytest.LogCaptureFixture
) -> None:
    task = store.create(description="Loop check", reminder_at=NOW - timedelta(seconds=1))
    assert scheduler.is_running() is False

    scheduler.start()
    assert scheduler.is_running() is True

    with caplog.at_level(logging.WARNING, logger="task_reminder.tasks.task_scheduler"):
        scheduler.start()
    assert "already running" in caplog.text

    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert scheduler.is_running() is False
    loaded = store.get_by_id(task.id)
    assert loaded is not None
    assert loaded.completed is True
    assert len(channel.sent) == 1


def test_stop_drops_a_start_queued_from_another_thread(scheduler: Scheduler) -> None:
    loop = asyncio.new_event_loop()
    try:
        scheduler.attach(loop)
        # No running loop here: start() is queued onto the attached loop.
        scheduler.start()
        asyncio.run(scheduler.stop())

        loop.run_until_complete(asyncio.sleep(0))
        assert scheduler.is_running() is False
    finally:
        loop.close()


@pytest.mark.asyncio
async def test_scheduler_can_restart_after_stop(scheduler: Scheduler) -> None:
    scheduler.start()
    await scheduler.stop()

    scheduler.start()
    assert scheduler.is_running() is True
    await scheduler.stop()
    assert scheduler.is_running() is False


@pytest.mark.asyncio
async def test_send_digest_now_does_not_touch_schedule(
    store: TaskStore, scheduler: Scheduler, channel: FakeChannel
) -> None:
    store.set_schedule(60)

    result = await scheduler.send_digest_now()

    assert result.any_succeeded is True
    schedule = store.get_schedule()
    assert schedule is not None
    assert schedule.last_sent_at is None
    assert channel.sent[0].subject == "Tasks Summary - 2024-12-17 12:00"
