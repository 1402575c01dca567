# src/task_timer/core/ticker.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RepeatingTicker:
    """
    Calls a callback every interval_seconds on the running event loop.

    Only one loop is alive at a time: start() cancels the previous one first.
    stop() is synchronous and idempotent.
    """

    def __init__(self, interval_seconds: float = 1.0) -> None:
        self._interval = max(0.001, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(callback), name="task-timer-tick")

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        # Cancelling from inside the callback targets the current task; that's fine,
        # _run() only awaits in asyncio.sleep().
        task.cancel()

    async def _run(self, callback: Callable[[], None]) -> None:
        me = asyncio.current_task()
        while True:
            await asyncio.sleep(self._interval)
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed.")
            # The callback may have stopped (or replaced) us.
            if self._task is not me:
                return

    async def aclose(self) -> None:
        """Stop and wait for the loop to finish (shutdown helper)."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
