# src/task_reminder/clients/weather.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.ports import WeatherSnapshot

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"


class WeatherLookupError(RuntimeError):
    pass


class OpenWeatherClient:
    """Current weather from OpenWeatherMap (`/weather?q=<city>`)."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str | None,
        base_url: str = OPENWEATHER_BASE_URL,
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def current_weather(self, city: str, units: str = "metric") -> WeatherSnapshot:
        if not self._api_key:
            raise WeatherLookupError("OpenWeatherMap API key is not configured")

        resp = await self._http.get(
            f"{self._base_url}/weather",
            params={"q": city, "appid": self._api_key, "units": units},
        )
        if resp.status_code != httpx.codes.OK:
            raise WeatherLookupError(f"Failed to fetch weather: {resp.status_code}")
        return parse_weather(resp.json(), units=units)


def parse_weather(data: dict[str, Any], *, units: str = "metric") -> WeatherSnapshot:
    try:
        main = data["main"]
        conditions = data.get("weather") or [{}]
        coord = data.get("coord") or {}
        return WeatherSnapshot(
            city=str(data.get("name") or ""),
            country=str((data.get("sys") or {}).get("country") or ""),
            description=str(conditions[0].get("description") or "N/A"),
            temperature=float(main["temp"]),
            feels_like=float(main.get("feels_like", main["temp"])),
            humidity=int(main.get("humidity", 0)),
            wind_speed=float((data.get("wind") or {}).get("speed", 0.0)),
            units=units,
            latitude=coord.get("lat"),
            longitude=coord.get("lon"),
            utc_offset_seconds=int(data.get("timezone") or 0),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise WeatherLookupError(f"Unexpected weather payload: {e}") from e


def format_weather_line(w: WeatherSnapshot) -> str:
    deg = "°F" if w.units == "imperial" else "°C"
    speed = "mph" if w.units == "imperial" else "m/s"
    place = f"{w.city}, {w.country}" if w.country else w.city
    return (
        f"{place}: {w.temperature:.0f}{deg} (feels like {w.feels_like:.0f}{deg}), "
        f"{w.description}, humidity {w.humidity}%, wind {w.wind_speed} {speed}"
    )
