# src/task_reminder/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState
  (store, HTTP providers, channels, dispatcher, enricher, scheduler, service).
"""

from __future__ import annotations

import contextlib
import logging

import httpx

from ..clients.time import CityTimeClient
from ..clients.weather import OpenWeatherClient
from ..config import get_settings
from ..core.ports import NotificationChannel, TaskComposer
from ..core.state import AppState
from ..enrich.enricher import TaskEnricher
from ..llm.client import OpenAICompatComposer
from ..notify.channels import ConsoleChannel, EmailChannel, MatrixChannel, TelegramChannel
from ..notify.dispatcher import NotificationDispatcher
from ..tasks.clock import make_clock
from ..tasks.task_api import TaskService
from ..tasks.task_scheduler import Scheduler
from ..tasks.task_store import TaskStore
from .background import BackgroundLoop

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_channels(settings, http: httpx.AsyncClient) -> list[NotificationChannel]:
    """All known channels; each one carries its own enabled flag."""
    return [
        TelegramChannel(
            http,
            bot_token=settings.telegram_bot_token,
            chat_id=settings.telegram_chat_id,
            enabled=settings.telegram_enabled,
        ),
        EmailChannel(
            smtp_host=settings.email_smtp_host,
            smtp_port=settings.email_smtp_port,
            username=settings.email_username,
            password=settings.email_password,
            from_addr=settings.email_from,
            to_addr=settings.email_to,
            enabled=settings.email_enabled,
        ),
        MatrixChannel(
            homeserver=settings.matrix_homeserver,
            user_id=settings.matrix_user_id,
            password=settings.matrix_password,
            room_id=settings.matrix_room_id,
            enabled=settings.matrix_enabled,
            device_name=settings.app_name,
        ),
        ConsoleChannel(enabled=settings.console_channel_enabled),
    ]


def build_composer(settings) -> TaskComposer | None:
    if not settings.llm_enabled:
        return None
    if not settings.llm_api_key:
        logger.warning("LLM composer enabled but no API key is set; notes are disabled.")
        return None
    return OpenAICompatComposer(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        model=settings.llm_model,
    )


def create_initial_state(*, settings=None, background: BackgroundLoop | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). When a background loop
    is given, the scheduler is attached to it so it can be started from the
    console thread.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = make_clock(settings.timezone)
    http = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))

    weather = OpenWeatherClient(
        http,
        api_key=settings.openweather_api_key,
        base_url=settings.openweather_base_url,
    )
    time_provider = CityTimeClient(http, weather, geocode_url=settings.geocode_url)
    composer = build_composer(settings)

    enricher = TaskEnricher(
        weather,
        time_provider,
        default_cities=settings.default_cities,
        units=settings.weather_units,
        composer=composer,
    )
    dispatcher = NotificationDispatcher(build_channels(settings, http))
    store = TaskStore(settings.tasks_db_path, clock=clock)

    scheduler = Scheduler(
        store,
        dispatcher,
        enricher,
        clock=clock,
        max_concurrent=settings.scheduler_max_concurrent,
    )
    if background is not None:
        scheduler.attach(background.loop)

    enabled = [c.name for c in dispatcher.enabled_channels()]
    logger.info("Notification channels enabled: %s", ", ".join(enabled) or "none")

    return AppState(
        settings=settings,
        task_store=store,
        dispatcher=dispatcher,
        enricher=enricher,
        scheduler=scheduler,
        service=TaskService(store, scheduler, clock=clock),
        http=http,
        composer=composer,
        background=background,
    )


async def aclose_state(state: AppState) -> None:
    """Stop the scheduler and release network clients (best-effort)."""
    with contextlib.suppress(Exception):
        await state.scheduler.stop()

    aclose = getattr(state.composer, "aclose", None)
    if aclose is not None:
        with contextlib.suppress(Exception):
            await aclose()

    if state.http is not None:
        with contextlib.suppress(Exception):
            await state.http.aclose()
