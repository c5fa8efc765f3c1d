# src/task_reminder/enrich/enricher.py

"""
Task enrichment: attach weather and local time to a due task.

Best-effort by contract. Every lookup failure is replaced by a placeholder,
so enrich() always returns something that can be sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..clients.time import format_time_line
from ..clients.weather import format_weather_line
from ..core.ports import LocationExtractor, TaskComposer, TimeProvider, WeatherProvider
from ..tasks.task_models import Task
from .location import CapitalizedWordExtractor

logger = logging.getLogger(__name__)

UNAVAILABLE = "unavailable"
DEFAULT_CITIES = ("Moscow", "London", "New York")


@dataclass(slots=True)
class CityContext:
    city: str
    weather: str
    time: str

    @property
    def degraded(self) -> bool:
        return self.weather == UNAVAILABLE or self.time == UNAVAILABLE


@dataclass(slots=True)
class EnrichedContext:
    task: Task
    location: str | None
    cities: list[CityContext] = field(default_factory=list)
    note: str | None = None

    @property
    def degraded(self) -> bool:
        return any(c.degraded for c in self.cities)

    @property
    def text(self) -> str:
        t = self.task
        lines = [
            f"📌 {t.title}",
            f"📅 {t.reminder_at.strftime('%Y-%m-%d')}",
            f"⏰ {t.reminder_at.strftime('%H:%M')}",
            f"📝 {t.description}",
        ]
        for c in self.cities:
            lines.append("")
            if len(self.cities) > 1:
                lines.append(f"📍 {c.city}")
            lines.append(f"🌤️ {c.weather}")
            lines.append(f"🕐 {c.time}")
        if self.note:
            lines.append("")
            lines.append(self.note)
        return "\n".join(lines)


class TaskEnricher:
    """
    Build the notification body for one task.

    - location found in title/description -> one city block
    - nothing found                       -> one block per default city
    - optional composer appends a short friendly note (failures ignored)
    """

    def __init__(
        self,
        weather: WeatherProvider,
        time: TimeProvider,
        *,
        extractor: LocationExtractor | None = None,
        default_cities: Sequence[str] = DEFAULT_CITIES,
        units: str = "metric",
        composer: TaskComposer | None = None,
    ) -> None:
        self._weather = weather
        self._time = time
        self._extractor = extractor or CapitalizedWordExtractor()
        self._default_cities = list(default_cities) or list(DEFAULT_CITIES)
        self._units = units
        self._composer = composer

    def locate(self, task: Task) -> str | None:
        try:
            return self._extractor.extract(f"{task.title} {task.description}")
        except Exception:
            logger.exception("Location extractor failed for task id=%s", task.id)
            return None

    async def _weather_line(self, city: str) -> str:
        try:
            return format_weather_line(await self._weather.current_weather(city, self._units))
        except Exception as e:
            logger.warning("Weather unavailable for %s: %s", city, e)
            return UNAVAILABLE

    async def _time_line(self, city: str) -> str:
        try:
            return format_time_line(await self._time.city_time(city))
        except Exception as e:
            logger.warning("Time unavailable for %s: %s", city, e)
            return UNAVAILABLE

    async def _city_context(self, city: str) -> CityContext:
        weather, time = await asyncio.gather(self._weather_line(city), self._time_line(city))
        return CityContext(city=city, weather=weather, time=time)

    async def enrich(self, task: Task) -> EnrichedContext:
        location = self.locate(task)
        cities = [location] if location else self._default_cities
        logger.debug("Enriching task id=%s location=%r cities=%s", task.id, location, cities)

        blocks = await asyncio.gather(*(self._city_context(c) for c in cities))
        ctx = EnrichedContext(task=task, location=location, cities=list(blocks))

        if ctx.degraded:
            logger.info("Enrichment degraded for task id=%s (placeholders used)", task.id)

        if self._composer is not None:
            try:
                note = (await self._composer.compose(ctx.text)).strip()
            except Exception:
                logger.exception("Composer failed for task id=%s", task.id)
            else:
                ctx.note = note or None

        return ctx
