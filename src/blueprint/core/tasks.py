"""Fire-and-forget background tasks with an error boundary and shutdown drain."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from src.blueprint.core.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """Spawns detached asyncio tasks and tracks them until they finish.

    The event loop only keeps weak references to tasks, so the runner holds
    strong ones until completion. Exceptions that escape a task are logged
    in the done-callback and never reach the spawning caller.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._shutting_down = False

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Schedule coro on the running loop and return without awaiting it."""
        if self._shutting_down:
            logger.warning("Spawning background task during shutdown", task_name=name)
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Background task started", task_name=name, in_flight=len(self._tasks))
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task cancelled", task_name=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task crashed",
                task_name=task.get_name(),
                exc_info=exc,
            )

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait for all in-flight tasks to finish.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if all tasks completed within timeout, False otherwise
        """
        self._shutting_down = True
        if not self._tasks:
            return True
        logger.info("Waiting for background tasks", in_flight=len(self._tasks))
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(
                "Shutdown timeout with background tasks still running",
                timeout=timeout,
                in_flight=len(pending),
            )
            return False
        logger.info("All background tasks drained")
        return True

    def reset(self) -> None:
        """Reset runner state. For testing only."""
        self._tasks = set()
        self._shutting_down = False


# Global runner instance
task_runner = BackgroundTaskRunner()
