"""Explicit background maintenance loops.

Subsystems never schedule timers at import time. Each owns a ``PeriodicTask``
that the host process starts and stops from the application lifespan, and
tests call the underlying sweep methods directly instead.
"""

import asyncio
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class PeriodicTask:
    """Run a synchronous callable every ``interval_seconds`` on the event loop.

    Exceptions raised by the callable are logged and the loop keeps running;
    a failed sweep only delays memory reclamation until the next tick.
    """

    def __init__(self, name: str, interval_seconds: float, func: Callable[[], object]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self._func = func
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info("maintenance_task_started", task=self.name, interval=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Idempotent."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("maintenance_task_stopped", task=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self._func()
            except Exception as exc:
                logger.error("maintenance_task_failed", task=self.name, error=str(exc))
