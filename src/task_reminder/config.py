# src/task_reminder/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Every notification channel is independently switched on/off.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKREM"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    """Comma-separated list (city names may contain spaces)."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Time ----
    timezone: str

    # ---- Scheduler ----
    scheduler_enabled: bool
    scheduler_max_concurrent: int
    console_enabled: bool

    # ---- Enrichment ----
    default_cities: list[str]
    openweather_api_key: str | None
    openweather_base_url: str
    weather_units: str
    geocode_url: str
    http_timeout_seconds: float

    # ---- Channels ----
    telegram_enabled: bool
    telegram_bot_token: str | None
    telegram_chat_id: str | None

    email_enabled: bool
    email_smtp_host: str | None
    email_smtp_port: int
    email_username: str | None
    email_password: str | None
    email_from: str | None
    email_to: str | None

    matrix_enabled: bool
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: str

    console_channel_enabled: bool

    # ---- LLM (optional composer) ----
    llm_enabled: bool
    llm_api_key: str | None
    llm_base_url: str
    llm_model: str

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "task-reminder")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_reminder"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        timezone = _env(_k("TIMEZONE"), "Europe/Moscow")

        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)
        scheduler_max_concurrent = max(1, _env_int(_k("SCHEDULER_MAX_CONCURRENT"), 4))
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        default_cities = _env_list(_k("DEFAULT_CITIES"), ["Moscow", "London", "New York"])
        openweather_api_key = _first_env(_k("OPENWEATHER_API_KEY"), "OPENWEATHER_API_KEY", default=None)
        openweather_base_url = _env(_k("OPENWEATHER_BASE_URL"), "https://api.openweathermap.org/data/2.5")
        weather_units = _env(_k("WEATHER_UNITS"), "metric")
        geocode_url = _env(_k("GEOCODE_URL"), "https://geocoding-api.open-meteo.com/v1/search")
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0)

        telegram_enabled = _env_bool(_k("TELEGRAM_ENABLED"), False)
        telegram_bot_token = _first_env(_k("TELEGRAM_BOT_TOKEN"), "TELEGRAM_BOT_TOKEN", default=None)
        telegram_chat_id = _first_env(_k("TELEGRAM_CHAT_ID"), "TELEGRAM_CHAT_ID", default=None)

        email_enabled = _env_bool(_k("EMAIL_ENABLED"), False)
        email_smtp_host = _first_env(_k("EMAIL_SMTP_HOST"), default=None)
        email_smtp_port = _env_int(_k("EMAIL_SMTP_PORT"), 587)
        email_username = _first_env(_k("EMAIL_USERNAME"), default=None)
        email_password = _first_env(_k("EMAIL_PASSWORD"), default=None)
        email_from = _first_env(_k("EMAIL_FROM"), default=email_username)
        email_to = _first_env(_k("EMAIL_TO"), default=None)

        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)
        matrix_homeserver = (_first_env(_k("MATRIX_HOMESERVER"), "MATRIX_HOMESERVER", default="") or "").strip()
        matrix_user_id = (_first_env(_k("MATRIX_USER_ID"), "MATRIX_USER_ID", default="") or "").strip()
        matrix_password = (_first_env(_k("MATRIX_PASSWORD"), "MATRIX_PASSWORD", default="") or "").strip()
        matrix_room_id = (_first_env(_k("MATRIX_ROOM_ID"), default="") or "").strip()

        console_channel_enabled = _env_bool(_k("CONSOLE_CHANNEL_ENABLED"), False)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "DEEPSEEK_API_KEY", default=None)
        llm_enabled = _env_bool(_k("LLM_ENABLED"), llm_api_key is not None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://api.deepseek.com/v1")
        llm_model = _env(_k("LLM_MODEL"), "deepseek-chat")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            timezone=timezone,
            scheduler_enabled=scheduler_enabled,
            scheduler_max_concurrent=scheduler_max_concurrent,
            console_enabled=console_enabled,
            default_cities=default_cities,
            openweather_api_key=openweather_api_key,
            openweather_base_url=openweather_base_url,
            weather_units=weather_units,
            geocode_url=geocode_url,
            http_timeout_seconds=http_timeout_seconds,
            telegram_enabled=telegram_enabled,
            telegram_bot_token=telegram_bot_token,
            telegram_chat_id=telegram_chat_id,
            email_enabled=email_enabled,
            email_smtp_host=email_smtp_host,
            email_smtp_port=email_smtp_port,
            email_username=email_username,
            email_password=email_password,
            email_from=email_from,
            email_to=email_to,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_room_id=matrix_room_id,
            console_channel_enabled=console_channel_enabled,
            llm_enabled=llm_enabled,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_model=llm_model,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
