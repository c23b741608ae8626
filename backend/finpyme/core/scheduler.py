"""Periodic job scheduling.

Background refreshes (exchange rates) are registered through the `Scheduler`
interface. Each job gets its own `CancelHandle`.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger()

Job = Callable[[], Awaitable[None]]


class CancelHandle:
    """Handle returned by `Scheduler.schedule`; cancelling is idempotent."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._cancel()


class Scheduler(ABC):
    """Run an async job every `interval_seconds` until cancelled."""

    @abstractmethod
    def schedule(self, interval_seconds: float, fn: Job) -> CancelHandle:
        """Register `fn`; the first run happens one interval from now."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Cancel every registered job."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by one asyncio task per job."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, interval_seconds: float, fn: Job) -> CancelHandle:
        task = asyncio.get_running_loop().create_task(self._run(interval_seconds, fn))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return CancelHandle(task.cancel)

    async def _run(self, interval_seconds: float, fn: Job) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await fn()
            except Exception as e:
                # A failing run must not kill the periodic job
                logger.error(
                    "scheduled_job_failed",
                    job=getattr(fn, "__qualname__", repr(fn)),
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
