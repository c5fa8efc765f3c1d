# src/task_reminder/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "task_reminder.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Make the interactive console usable:
    - allow most task_reminder logs
    - but keep background components (scheduler, channels) quiet unless WARNING+
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise unless ERROR+
    """

    # These run on the background loop thread and would interleave with the REPL prompt.
    _BACKGROUND = (
        "task_reminder.tasks.task_scheduler",
        "task_reminder.notify.",
        "task_reminder.enrich.",
        "task_reminder.clients.",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        # Our app logs: keep, except the chatty background ones.
        if name.startswith("task_reminder."):
            if name.startswith(self._BACKGROUND):
                return record.levelno >= logging.WARNING
            return True

        # Python warnings captured into logging.
        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # Any other 3rd party (httpx, openai, nio): only errors to console.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_reminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs, including every reminder and digest dispatch

    Call this ONCE, very early (before first logger.info). Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console (interactive)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # File (everything)
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

    return log_file
