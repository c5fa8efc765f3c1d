# src/task_reminder/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from .ports import TaskComposer, TaskRepo

if TYPE_CHECKING:
    from ..cli.background import BackgroundLoop
    from ..enrich.enricher import TaskEnricher
    from ..notify.dispatcher import NotificationDispatcher
    from ..tasks.task_api import TaskService
    from ..tasks.task_scheduler import Scheduler


@dataclass
class AppState:
    """
    Wired application graph, resolved once in the composition root.

    Optional collaborators are None when not configured; nothing downstream
    re-reads settings to decide whether they exist.
    """

    # Settings (real Settings or a SimpleNamespace in tests).
    settings: Any

    task_store: TaskRepo
    dispatcher: NotificationDispatcher
    enricher: TaskEnricher
    scheduler: Scheduler
    service: TaskService

    http: httpx.AsyncClient | None = None
    composer: TaskComposer | None = None
    background: BackgroundLoop | None = None
