# src/task_reminder/cli/background.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BackgroundLoop:
    """
    An asyncio loop running forever in a daemon thread.

    The console REPL is blocking (input()), so the scheduler, channel sends and
    the shared httpx client all live on this loop instead.
    """

    thread: threading.Thread
    loop: asyncio.AbstractEventLoop

    def submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run a coroutine on the loop and block the calling thread for its result."""
        return self.submit(coro).result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.loop.stop)
        except RuntimeError:
            logger.debug("Background loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_background_loop(name: str = "task-reminder-loop") -> BackgroundLoop | None:
    ready = threading.Event()
    holder: dict[str, asyncio.AbstractEventLoop] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        holder["loop"] = loop
        ready.set()

        try:
            loop.run_forever()
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name=name, daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    if loop is None:
        logger.error("Background loop thread did not initialize properly.")
        return None

    logger.info("Background loop thread started.")
    return BackgroundLoop(thread=t, loop=loop)
