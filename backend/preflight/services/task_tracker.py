"""Task Tracker — owns the background fetch tasks spawned by one preflight flow.

Invariants:
    - Every spawned task is referenced until done (asyncio keeps only weak refs)
    - Unexpected task exceptions are logged, never re-raised into the event loop
    - settle() returns only when no task is pending, including tasks spawned meanwhile

Design Decisions:
    - Explicit tracker over fire-and-forget create_task: close() can cancel stragglers
      when the flow is discarded
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskTracker:
    """Spawns and tracks background tasks for one flow."""

    def __init__(self, owner: str = "preflight"):
        self.owner = owner
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            coro, name=f"{self.owner}:{name}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc,
                exc_info=exc,
            )

    async def settle(self) -> None:
        """Wait until every tracked task (and any it spawns) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
