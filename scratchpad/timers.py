"""Single-slot debounce handles and fixed-interval background tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class Debouncer:
    """Run a callback after a quiet period. Scheduling again resets it.

    Only the most recent schedule ever fires. Once the delay elapses the
    callback is detached from the slot, so ``cancel()`` never interrupts a
    callback that has already started.
    """

    def __init__(self, name: str, delay: float) -> None:
        self.name = name
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None

    def schedule(self, callback: Callback) -> None:
        """Cancel any pending run, then schedule ``callback``."""
        self.cancel()
        self._task = asyncio.create_task(self._run(callback), name=f"debounce:{self.name}")

    def cancel(self) -> None:
        """Cancel the pending run, if any."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, callback: Callback) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        try:
            await callback()
        except Exception as e:
            logger.warning("Debounced %s callback failed: %s", self.name, e)


class IntervalTimer:
    """Call a coroutine every ``interval`` seconds until stopped."""

    def __init__(self, name: str, interval: float, callback: Callback) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name=f"interval:{self.name}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._callback()
            except Exception as e:
                logger.warning("Interval %s callback failed: %s", self.name, e)
