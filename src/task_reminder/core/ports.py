# src/task_reminder/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler, enricher and dispatcher depend on Protocols instead of concrete
implementations. This keeps channels/HTTP providers/storage swappable and makes
testing easier.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from ..tasks.task_models import Importance, NotificationSchedule, Recurrence, Task

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


@dataclass(slots=True, frozen=True)
class WeatherSnapshot:
    city: str
    country: str
    description: str
    temperature: float
    feels_like: float
    humidity: int
    wind_speed: float
    units: str = "metric"
    latitude: float | None = None
    longitude: float | None = None
    utc_offset_seconds: int = 0


@dataclass(slots=True, frozen=True)
class CityTime:
    city: str
    country: str
    timezone: str
    current_time: str  # HH:MM:SS
    current_date: str  # YYYY-MM-DD
    utc_offset: str
    day_of_week: str
    is_dst: bool = False


class WeatherProvider(Protocol):
    async def current_weather(self, city: str, units: str = "metric") -> WeatherSnapshot: ...


class TimeProvider(Protocol):
    async def city_time(self, city: str) -> CityTime: ...


class NotificationChannel(Protocol):
    """
    One outbound delivery mechanism (Telegram, email, ...).

    send() returns a short acknowledgement text or raises on failure.
    """

    name: str

    @property
    def enabled(self) -> bool: ...

    async def send(self, subject: str, body: str) -> str: ...


class LocationExtractor(Protocol):
    """Strategy that guesses a place name from free text."""

    def extract(self, text: str) -> str | None: ...


class TaskComposer(Protocol):
    """Optional chat-completion step that turns an enriched block into a friendly note."""

    async def compose(self, context: str) -> str: ...


class TaskRepo(Protocol):
    # Task CRUD / queries
    def create(
            self,
            *,
            description: str,
            reminder_at: datetime,
            title: str | None = None,
            recurrence: Recurrence = Recurrence.NONE,
            importance: Importance = Importance.MEDIUM,
    ) -> Task: ...
    def get_by_id(self, task_id: int) -> Task | None: ...
    def list_all(self) -> list[Task]: ...
    def list_by_completed(self, completed: bool) -> list[Task]: ...
    def list_by_importance(self, importance: Importance) -> list[Task]: ...
    def list_by_date(self, day: date) -> list[Task]: ...
    def list_overdue(self, now: datetime) -> list[Task]: ...
    def list_upcoming(self, now: datetime, horizon_hours: int = 24) -> list[Task]: ...
    def list_high_priority(self) -> list[Task]: ...
    def delete(self, task_id: int) -> bool: ...
    def set_completed(self, task_id: int, completed: bool) -> bool: ...

    # Scheduler API
    def list_due(self, now: datetime) -> list[Task]: ...
    def mark_processed(self, task: Task, now: datetime) -> bool: ...

    # Digest schedule
    def set_schedule(self, interval_minutes: int, enabled: bool = True) -> NotificationSchedule: ...
    def get_schedule(self) -> NotificationSchedule | None: ...
    def update_last_sent(self, schedule_id: int, now: datetime) -> bool: ...
