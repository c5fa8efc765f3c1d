# src/task_reminder/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then:
- runs the scheduler on a background event-loop thread,
- runs the console REPL in the main thread (optional).
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..cli.background import start_background_loop
from ..cli.bootstrap import aclose_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/task_reminder")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger.info("Starting %s... (log file: %s)", getattr(settings, "app_name", "task-reminder"), log_file)

    background = start_background_loop()
    if background is None:
        raise SystemExit("Could not start the background event loop.")

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings, background=background)

    if settings.scheduler_enabled:
        state.scheduler.start()
    else:
        logger.info("Scheduler disabled by configuration (TASKREM_SCHEDULER_ENABLED=0).")

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    # SIGTERM is not available everywhere.
    with contextlib.suppress(ValueError, OSError, AttributeError):
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        try:
            background.run(aclose_state(state), timeout=10.0)
        except Exception:
            logger.exception("Shutdown did not complete cleanly.")
        background.stop()
        background.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
