"""Detached side effects (index mirroring, notifications) with their own error boundary."""

import asyncio
from typing import Awaitable, Optional

import structlog

logger = structlog.get_logger()


class BackgroundTasks:
    """
    Runs coroutines detached from the caller.

    Errors are logged and never propagate. Tasks are tracked so a short-lived
    process (the CLI) can drain them before the event loop closes.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()
        self.log = logger.bind(component="background_tasks")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        """Schedule coro without awaiting it."""
        task = asyncio.create_task(self._run_with_error_handling(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_with_error_handling(self, coro: Awaitable, name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            self.log.warning("Background task cancelled", task=name)
            raise
        except Exception as e:
            self.log.error("Background task failed", task=name, error=str(e))

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding tasks; cancel whatever is left after timeout."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            self.log.warning("Cancelled unfinished background tasks", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
