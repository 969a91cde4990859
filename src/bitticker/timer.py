from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class RecurringTimer:
    """Fires an async callback every ``interval_seconds`` on the running loop.

    Each tick runs the callback as its own task, so a slow callback never
    delays the next tick and overlapping runs are possible. The first tick
    happens one full interval after ``start``.
    """

    def __init__(self, interval_seconds: float, callback: TickCallback):
        if interval_seconds <= 0:
            raise ValueError("interval must be positive")
        self._interval = float(interval_seconds)
        self._callback = callback
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[object]] = set()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run(), name="bitticker-timer")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            task = asyncio.ensure_future(self._callback())
            self._ticks.add(task)
            task.add_done_callback(self._tick_done)

    def _tick_done(self, task: asyncio.Task[object]) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("timer callback failed: %r", exc, exc_info=exc)

    def stop(self, *, cancel_pending: bool = False) -> None:
        """Stop ticking. Ticks already running finish unless ``cancel_pending``."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        if cancel_pending:
            for task in list(self._ticks):
                task.cancel()

    async def wait_pending(self) -> None:
        """Wait for callbacks spawned by earlier ticks to finish."""
        if self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)
