# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from task_reminder.core.state import AppState
from task_reminder.enrich.enricher import TaskEnricher
from task_reminder.notify.dispatcher import NotificationDispatcher
from task_reminder.tasks.task_api import TaskService
from task_reminder.tasks.task_scheduler import Scheduler
from task_reminder.tasks.task_store import TaskStore

from .fakes import FakeChannel, FakeClock, FakeTime, FakeWeather

NOW = datetime(2024, 12, 17, 12, 0, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-reminder-test",
        log_level="INFO",
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
        timezone="Europe/Moscow",
        scheduler_enabled=False,
        scheduler_max_concurrent=4,
        console_enabled=False,
        default_cities=["Moscow", "London", "New York"],
        openweather_api_key=None,
        openweather_base_url="https://api.openweathermap.org/data/2.5",
        weather_units="metric",
        geocode_url="https://geocoding-api.open-meteo.com/v1/search",
        http_timeout_seconds=5.0,
        telegram_enabled=False,
        telegram_bot_token=None,
        telegram_chat_id=None,
        email_enabled=False,
        email_smtp_host=None,
        email_smtp_port=587,
        email_username=None,
        email_password=None,
        email_from=None,
        email_to=None,
        matrix_enabled=False,
        matrix_homeserver="",
        matrix_user_id="",
        matrix_password="",
        matrix_room_id="",
        console_channel_enabled=True,
        llm_enabled=False,
        llm_api_key=None,
        llm_base_url="https://api.deepseek.com/v1",
        llm_model="deepseek-chat",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def store(tmp_path: Path, clock: FakeClock) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3", clock=clock)


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel(name="telegram")


@pytest.fixture()
def dispatcher(channel: FakeChannel) -> NotificationDispatcher:
    return NotificationDispatcher([channel])


@pytest.fixture()
def enricher() -> TaskEnricher:
    return TaskEnricher(FakeWeather(), FakeTime(), default_cities=["Moscow", "London", "New York"])


@pytest.fixture()
def scheduler(
    store: TaskStore,
    dispatcher: NotificationDispatcher,
    enricher: TaskEnricher,
    clock: FakeClock,
) -> Scheduler:
    return Scheduler(store, dispatcher, enricher, clock=clock, tick_seconds=0.01)


@pytest.fixture()
def service(store: TaskStore, scheduler: Scheduler, clock: FakeClock) -> TaskService:
    return TaskService(store, scheduler, clock=clock)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: TaskStore,
    dispatcher: NotificationDispatcher,
    enricher: TaskEnricher,
    scheduler: Scheduler,
    service: TaskService,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite TaskStore here because its correctness is
    part of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=store,
        dispatcher=dispatcher,
        enricher=enricher,
        scheduler=scheduler,
        service=service,
    )
