# src/task_reminder/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

A polling loop that, once per tick:
- sends the periodic digest if its interval has elapsed,
- finds due tasks, enriches them, dispatches them and records the outcome
  (completion or rollover to the next occurrence).

Delivery is at-least-once: list_due -> dispatch -> mark_processed is not atomic,
so only one scheduler instance may run against a task store.
"""

import asyncio
import contextlib
import logging
from datetime import datetime

from ..core.ports import TaskRepo
from ..enrich.enricher import TaskEnricher
from ..errors import DispatchError
from ..notify.dispatcher import DispatchResult, NotificationDispatcher
from .clock import Clock, make_clock
from .summary import build_summary
from .task_models import Task

logger = logging.getLogger(__name__)

TICK_SECONDS = 60.0


class Scheduler:
    """
    States: stopped -> running (start) -> stopped (stop).

    The loop task lives on the attached event loop (see attach()), or on the
    running loop of the caller when nothing is attached. start() is safe to
    call from another thread once a loop is attached.
    """

    def __init__(
        self,
        store: TaskRepo,
        dispatcher: NotificationDispatcher,
        enricher: TaskEnricher,
        *,
        clock: Clock | None = None,
        tick_seconds: float = TICK_SECONDS,
        max_concurrent: int = 4,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._enricher = enricher
        self._clock = clock or make_clock()
        self._tick_seconds = max(0.01, float(tick_seconds))
        self._max_concurrent = max(1, int(max_concurrent))
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        # Bumped by stop(); a start() queued from another thread before that is dropped.
        self._generation = 0

    # ---- lifecycle ----

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        target = self._loop or running
        if target is None:
            raise RuntimeError("Scheduler.start() needs a running or attached event loop")

        generation = self._generation
        if target is running:
            self._start_on_loop(generation)
        else:
            target.call_soon_threadsafe(self._start_on_loop, generation)

    def _start_on_loop(self, generation: int) -> None:
        if generation != self._generation:
            logger.info("Scheduler start cancelled by a later stop")
            return
        if self.is_running():
            logger.warning("Scheduler is already running")
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="task-scheduler")
        logger.info("Scheduler started (tick=%.0fs)", self._tick_seconds)

    async def stop(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Scheduler stopped")

    async def _run(self) -> None:
        while True:
            await self.run_tick()
            await asyncio.sleep(self._tick_seconds)

    # ---- one tick ----

    async def run_tick(self, now: datetime | None = None) -> None:
        """Digest check, then due-task check. Never raises (except cancellation)."""
        now = now or self._clock()

        try:
            await self._check_digest(now)
        except Exception:
            logger.exception("Digest check failed")

        try:
            await self._check_due_tasks(now)
        except Exception:
            logger.exception("Due-task check failed")

    async def _check_digest(self, now: datetime) -> None:
        schedule = await asyncio.to_thread(self._store.get_schedule)
        if schedule is None or not schedule.is_due(now):
            return

        logger.info("Time to send summary notification")
        try:
            result = await self.send_digest_now(now)
        except DispatchError as e:
            logger.error("Failed to send summary notification: %s", e)
            return

        if not result.any_succeeded:
            logger.error("Failed to send summary notification:\n%s", result.text)
            return

        await asyncio.to_thread(self._store.update_last_sent, schedule.id, now)

    async def send_digest_now(self, now: datetime | None = None) -> DispatchResult:
        """Build and send the digest immediately. Raises NoChannelsEnabled / StorageError."""
        now = now or self._clock()
        summary = await asyncio.to_thread(build_summary, self._store, now)
        result = await self._dispatcher.send_digest(summary)
        if result.any_succeeded:
            logger.info("Summary notification sent successfully")
        return result

    async def _check_due_tasks(self, now: datetime) -> None:
        tasks = await asyncio.to_thread(self._store.list_due, now)
        if not tasks:
            return

        logger.info("Found %d task(s) ready for notification", len(tasks))
        sem = asyncio.Semaphore(self._max_concurrent)

        async def _guarded(task: Task) -> None:
            async with sem:
                try:
                    await self._process_task(task, now)
                except Exception:
                    logger.exception("Error processing task notification #%s", task.id)

        await asyncio.gather(*(_guarded(t) for t in tasks))

    async def _process_task(self, task: Task, now: datetime) -> None:
        logger.info("Processing task notification for #%s: %s", task.id, task.title)
        ctx = await self._enricher.enrich(task)

        try:
            result = await self._dispatcher.send(f"Task Reminder: {task.title}", ctx.text)
        except DispatchError as e:
            await self._notify_failure(task, str(e))
            return

        if not result.any_succeeded:
            await self._notify_failure(task, result.text)
            return

        logger.debug("Notification content:\n%s", ctx.text)
        if not await asyncio.to_thread(self._store.mark_processed, task, now):
            logger.warning("Task #%s disappeared before it could be marked processed", task.id)
        elif task.is_recurring:
            logger.info("Task #%s rescheduled for next occurrence (recurrence: %s)", task.id, task.recurrence.value)
        else:
            logger.info("Task #%s marked as completed", task.id)

    async def _notify_failure(self, task: Task, reason: str) -> None:
        """Best effort: the task stays due and is retried next tick either way."""
        logger.error("Failed to send notification for task #%s: %s", task.id, reason)
        body = f"❌ Failed to send notification for task:\nTask: {task.title}\nError: {reason}\n"
        try:
            await self._dispatcher.send(f"Task Notification Failed: {task.title}", body)
        except Exception as e:
            logger.debug("Could not send error notification: %s", e)
