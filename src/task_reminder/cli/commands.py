# src/task_reminder/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import shlex
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar, cast

from ..core.state import AppState

CommandEmitter = Callable[[str], None]
CommandHandler4 = Callable[[AppState, list[str], str | None, str | None], str]
CommandHandler5 = Callable[
    [AppState, list[str], str | None, str | None, CommandEmitter | None], str
]
CommandHandler = CommandHandler4 | CommandHandler5

T = TypeVar("T")

logger = logging.getLogger(__name__)

ASYNC_COMMAND_TIMEOUT_SECONDS = 120.0


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        room_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 5

        if nparams >= 5:
            h5 = cast(CommandHandler5, handler)
            return h5(state, args, user_id, room_id, emit)

        h4 = cast(CommandHandler4, handler)
        return h4(state, args, user_id, room_id)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _run_async(state: AppState, coro: Coroutine[Any, Any, T]) -> T:
    """Run on the app's background loop (where the HTTP client lives), else on a fresh loop."""
    if state.background is not None:
        return state.background.run(coro, timeout=ASYNC_COMMAND_TIMEOUT_SECONDS)
    return asyncio.run(coro)


def _parse_id(args: list[str]) -> int | None:
    if not args:
        return None
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        return None


def cmd_help(
    state: AppState,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    s = state.settings
    channels = ", ".join(c.name for c in state.dispatcher.enabled_channels()) or "none"
    cities = ", ".join(getattr(s, "default_cities", []) or [])
    return (
        "Status:\n"
        f"  Scheduler: {'RUNNING' if state.scheduler.is_running() else 'STOPPED'}\n"
        f"  Channels: {channels}\n"
        f"  Timezone: {getattr(s, 'timezone', '?')}\n"
        f"  Default cities: {cities}\n"
        f"  LLM notes: {'ON' if state.composer is not None else 'OFF'}\n"
        f"  Database: {getattr(s, 'tasks_db_path', '?')}"
    )


def cmd_add(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    """
    /add at=2024-12-17T15:30:00 [title="..."] [every=daily] [importance=high] description...
    """
    opts: dict[str, str] = {}
    words: list[str] = []
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in ("title", "at", "every", "importance"):
            opts[key.lower()] = value
        else:
            words.append(a)

    description = " ".join(words).strip()
    if not description or "at" not in opts:
        return (
            "Usage: /add at=<YYYY-MM-DDTHH:MM:SS> [title=\"...\"] "
            "[every=daily|weekly|monthly] [importance=low|medium|high|urgent] <description>"
        )

    return state.service.add(
        opts.get("title"),
        description,
        opts["at"],
        recurrence=opts.get("every"),
        importance=opts.get("importance") or "MEDIUM",
    )


def cmd_list(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    return state.service.list_tasks(args[0] if args else None)


def cmd_get(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /get <id>"
    return state.service.get(task_id)


def cmd_date(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    if not args:
        return "Usage: /date <YYYY-MM-DD>"
    return state.service.list_for_date(args[0])


def cmd_importance(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    if not args:
        return "Usage: /importance low|medium|high|urgent"
    return state.service.list_by_importance(args[0])


def cmd_complete(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /complete <id>"
    return state.service.complete(task_id)


def cmd_delete(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /delete <id>"
    return state.service.delete(task_id)


def cmd_summary(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    return state.service.summarize()


def cmd_schedule(state: AppState, args: list[str], user_id: str | None, room_id: str | None) -> str:
    """
    /schedule               -> show the digest schedule
    /schedule 60            -> digest every 60 minutes
    /schedule 60 off        -> store the interval but keep the digest disabled
    """
    if not args:
        return state.service.get_schedule()

    try:
        minutes = int(args[0])
    except ValueError:
        return "Usage: /schedule [minutes] [on|off]"

    enabled = True
    if len(args) > 1:
        flag = args[1].lower()
        if flag in ("on", "1", "true", "yes"):
            enabled = True
        elif flag in ("off", "0", "false", "no"):
            enabled = False
        else:
            return "Usage: /schedule [minutes] [on|off]"

    return state.service.set_schedule(minutes, enabled)


def cmd_digest(
    state: AppState,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    if emit:
        with contextlib.suppress(Exception):
            emit("Sending digest to all enabled channels...")

    try:
        return _run_async(state, state.service.send_test_digest())
    except TimeoutError:
        logger.warning("Digest send timed out after %.0fs", ASYNC_COMMAND_TIMEOUT_SECONDS)
        return "Error sending test notification: timed out"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show scheduler state and enabled channels.")
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add at=2024-12-17T15:30:00 [every=weekly] [importance=high] text.",
    aliases=["new"],
)
registry.register("list", cmd_list, help_text="List tasks: /list [active|completed].", aliases=["ls"])
registry.register("get", cmd_get, help_text="Show one task: /get <id>.", aliases=["show"])
registry.register("date", cmd_date, help_text="Tasks on a day: /date 2024-12-17.")
registry.register("importance", cmd_importance, help_text="Tasks by importance: /importance high.")
registry.register("complete", cmd_complete, help_text="Mark a task completed: /complete <id>.", aliases=["done"])
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("summary", cmd_summary, help_text="Task statistics, high priority and upcoming tasks.")
registry.register("schedule", cmd_schedule, help_text="Digest schedule: /schedule [minutes] [on|off].")
registry.register("digest", cmd_digest, help_text="Send the digest to all enabled channels now.")
