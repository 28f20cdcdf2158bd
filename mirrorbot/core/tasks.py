"""Tracked background tasks.

Voice jobs run outside the event consumer. Every task is kept in a set
until it finishes so shutdown can wait for (or cancel) what is in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from mirrorbot.logging_config import get_logger

logger: Any = get_logger(__name__)


class BackgroundTasks:
    """A set of named tasks whose failures are logged, never raised."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.debug(f"Background task {name} cancelled")
            raise
        except Exception as e:
            logger.exception(f"Background task {name} failed: {e}")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for running tasks. Tasks still running after timeout are cancelled."""
        if not self._tasks:
            return
        pending = list(self._tasks)
        done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} background tasks on shutdown")
            await asyncio.gather(*still_running, return_exceptions=True)
