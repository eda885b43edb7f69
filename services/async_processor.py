"""Fire-and-forget background tasks on the running event loop"""
import asyncio
import logging
from typing import Coroutine, Set

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class BackgroundTaskRunner:
    """
    Spawns tasks that the request path never awaits (e.g. writing a chat reply
    back into the vector index). Tasks run on the caller's loop so they share
    its asyncio locks. Holds strong references until each task finishes.
    Call drain() on app exit.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine, name: str = "background-task") -> asyncio.Task:
        """Schedule coro and return immediately. Failures are logged, never raised."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self) -> None:
        """Wait for all pending tasks to complete."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
