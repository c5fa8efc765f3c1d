# src/task_reminder/clients/time.py

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from ..core.ports import CityTime, WeatherProvider

logger = logging.getLogger(__name__)

# Open-Meteo geocoding: free, no API key, returns an IANA zone per place.
GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class TimeLookupError(RuntimeError):
    pass


def format_offset(seconds: int) -> str:
    sign = "+" if seconds >= 0 else "-"
    seconds = abs(seconds)
    return f"{sign}{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}"


class CityTimeClient:
    """
    Local time for a city.

    1. Geocode the city with Open-Meteo and use its IANA zone (DST-aware).
    2. If geocoding fails, fall back to the UTC offset reported by the weather
       provider for the same city.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        weather: WeatherProvider | None = None,
        *,
        geocode_url: str = GEOCODE_URL,
    ) -> None:
        self._http = http
        self._weather = weather
        self._geocode_url = geocode_url

    async def city_time(self, city: str) -> CityTime:
        now_utc = datetime.now(UTC)

        try:
            name, country, zone_name = await self._geocode(city)
            local = now_utc.astimezone(ZoneInfo(zone_name))
        except (httpx.HTTPError, TimeLookupError, ZoneInfoNotFoundError) as e:
            logger.debug("Geocoding failed for %s (%s), falling back to weather offset", city, e)
            return await self._from_weather_offset(city, now_utc)

        offset = local.utcoffset() or timedelta(0)
        return CityTime(
            city=name,
            country=country,
            timezone=zone_name,
            current_time=local.strftime("%H:%M:%S"),
            current_date=local.strftime("%Y-%m-%d"),
            utc_offset=format_offset(int(offset.total_seconds())),
            day_of_week=_DAY_NAMES[local.weekday()],
            is_dst=bool(local.dst()),
        )

    async def _geocode(self, city: str) -> tuple[str, str, str]:
        resp = await self._http.get(
            self._geocode_url,
            params={"name": city, "count": 1, "language": "en", "format": "json"},
        )
        resp.raise_for_status()
        results = resp.json().get("results") or []
        if not results:
            raise TimeLookupError(f"Location not found: {city!r}")
        first = results[0]
        zone_name = first.get("timezone")
        if not zone_name:
            raise TimeLookupError(f"No timezone for location: {city!r}")
        return str(first.get("name") or city), str(first.get("country_code") or ""), str(zone_name)

    async def _from_weather_offset(self, city: str, now_utc: datetime) -> CityTime:
        if self._weather is None:
            raise TimeLookupError(f"Cannot resolve timezone for {city!r}")
        try:
            w = await self._weather.current_weather(city)
        except Exception as e:
            raise TimeLookupError(f"Failed to get city coordinates: {e}") from e

        offset = w.utc_offset_seconds
        local = now_utc.astimezone(timezone(timedelta(seconds=offset)))
        return CityTime(
            city=w.city or city,
            country=w.country,
            timezone=f"UTC{format_offset(offset)}",
            current_time=local.strftime("%H:%M:%S"),
            current_date=local.strftime("%Y-%m-%d"),
            utc_offset=format_offset(offset),
            day_of_week=_DAY_NAMES[local.weekday()],
        )


def format_time_line(t: CityTime) -> str:
    place = f"{t.city}, {t.country}" if t.country else t.city
    return f"{place}: {t.current_time} ({t.day_of_week}, {t.current_date}, UTC{t.utc_offset})"
