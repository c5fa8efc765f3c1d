# src/task_reminder/notify/dispatcher.py

from __future__ import annotations

"""
Notification dispatcher.

Sends one composed message over every enabled channel:
- each channel's failure is caught and recorded, never aborts the others
- zero enabled channels -> NoChannelsEnabled
- otherwise the call returns a DispatchResult, even when every channel failed

Callers decide what "delivered" means by looking at DispatchResult.any_succeeded.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ..core.ports import NotificationChannel
from ..errors import NoChannelsEnabled
from ..tasks.task_models import Task, TaskSummary

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChannelOutcome:
    channel: str
    ok: bool
    detail: str

    def as_line(self) -> str:
        label = self.channel.capitalize()
        if self.ok:
            return f"{label} sent successfully"
        return f"{label} failed: {self.detail}"


@dataclass(slots=True)
class DispatchResult:
    outcomes: list[ChannelOutcome] = field(default_factory=list)

    @property
    def any_succeeded(self) -> bool:
        return any(o.ok for o in self.outcomes)

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and not self.any_succeeded

    @property
    def text(self) -> str:
        """One line per channel, the aggregate users see."""
        return "\n".join(o.as_line() for o in self.outcomes)

    def failures(self) -> list[ChannelOutcome]:
        return [o for o in self.outcomes if not o.ok]


class NotificationDispatcher:
    def __init__(self, channels: Sequence[NotificationChannel]) -> None:
        self._channels = list(channels)

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def enabled_channels(self) -> list[NotificationChannel]:
        return [c for c in self._channels if c.enabled]

    async def send(self, subject: str, body: str) -> DispatchResult:
        enabled = self.enabled_channels()
        if not enabled:
            raise NoChannelsEnabled()

        result = DispatchResult()
        for channel in enabled:
            try:
                ack = await channel.send(subject, body)
            except Exception as e:
                logger.error("Failed to send via %s: %s", channel.name, e, exc_info=True)
                result.outcomes.append(
                    ChannelOutcome(channel=channel.name, ok=False, detail=str(e) or type(e).__name__)
                )
                continue
            logger.info("Notification sent via %s subject=%r", channel.name, subject)
            result.outcomes.append(ChannelOutcome(channel=channel.name, ok=True, detail=ack or "ok"))

        if result.all_failed:
            logger.warning("All %d enabled channel(s) failed for subject=%r", len(enabled), subject)
        return result

    async def send_digest(self, summary: TaskSummary) -> DispatchResult:
        subject = f"Tasks Summary - {summary.generated_at.strftime('%Y-%m-%d %H:%M')}"
        return await self.send(subject, format_digest(summary))


def _fmt_dt(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M")


def _task_lines(task: Task, *, with_importance: bool) -> list[str]:
    prefix = f"[{task.importance.to_db()}] " if with_importance else ""
    return [
        f"  • {prefix}{task.title}",
        f"    Due: {_fmt_dt(task.reminder_at)}",
        f"    {task.description}",
        "",
    ]


def format_digest(summary: TaskSummary) -> str:
    lines = [
        "📋 **TASKS SUMMARY**",
        f"Generated at: {_fmt_dt(summary.generated_at)}",
        "",
        "**Statistics:**",
        f"• Total tasks: {summary.total}",
        f"• Active: {summary.active}",
        f"• Completed: {summary.completed}",
        f"• Overdue: {summary.overdue}",
        "",
    ]

    high = [t for t in summary.high_priority if t.is_high_priority]
    if high:
        lines.append("🔴 **HIGH PRIORITY TASKS:**")
        for task in high:
            lines.extend(_task_lines(task, with_importance=True))

    if summary.upcoming:
        lines.append("📅 **UPCOMING TASKS (Next 24 hours):**")
        for task in sorted(summary.upcoming, key=lambda t: t.reminder_at):
            lines.extend(_task_lines(task, with_importance=False))

    if summary.active == 0:
        lines.append("✅ All done! No active tasks.")

    return "\n".join(lines).rstrip() + "\n"
