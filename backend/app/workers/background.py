"""
Background Dispatcher — fire-and-forget side effects

Search-index updates and activity-feed writes run after the HTTP response
has been produced. They are plain asyncio tasks on the server's event loop:

  - spawn() schedules the coroutine and returns immediately
  - the request path never awaits, retries or cancels them
  - failures are logged from a done-callback and otherwise dropped
  - tasks still pending at shutdown are logged and lost

The dispatcher keeps a strong reference to each task until it finishes, so a
running task is never garbage-collected mid-flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class BackgroundDispatcher:

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        """Schedule coro on the running loop and return without waiting."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task cancelled | task=%s", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed | task=%s error=%s",
                task.get_name(), exc,
                exc_info=exc,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for the tasks spawned so far.
        Not used on request paths; tests call it to observe side effects.
        """
        if not self._tasks:
            return
        await asyncio.wait(set(self._tasks), timeout=timeout)

    def shutdown(self) -> None:
        if self._tasks:
            logger.warning(
                "Dropping %d unfinished background task(s) at shutdown", len(self._tasks)
            )
