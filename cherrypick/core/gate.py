"""
Counting admission control for concurrent file downloads.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set

from ..infrastructure.logger import logger


class ConcurrencyGate:
    """
    Bounds the number of simultaneous downloads across a whole walk.

    A thin layer over ``asyncio.Semaphore`` that adds peak tracking and
    cancellation: ``cancel()`` cancels every task blocked in ``acquire``
    and makes later acquires fail immediately.
    """

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.peak_in_flight = 0
        self._in_flight = 0
        self._cancelled = False
        self._semaphore = asyncio.Semaphore(capacity)
        self._blocked: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError("concurrency gate cancelled")

    async def acquire(self) -> None:
        """Wait for a permit; raises CancelledError once the gate is cancelled."""

        self._check_cancelled()

        task = asyncio.current_task()
        self._blocked.add(task)
        try:
            await self._semaphore.acquire()
        finally:
            self._blocked.discard(task)

        if self._cancelled:
            self._semaphore.release()
            self._check_cancelled()

        self._in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self._in_flight)

    def release(self) -> None:
        """Return a permit to the pool."""

        if self._in_flight <= 0:
            raise RuntimeError("release() called more times than acquire()")
        self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Hold a permit for the duration of the block, whatever happens in it."""

        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def cancel(self) -> None:
        """Fail every blocked and future acquire with CancelledError."""

        if self._cancelled:
            return
        self._cancelled = True
        blocked = [task for task in self._blocked if not task.done()]
        for task in blocked:
            task.cancel()
        logger.debug(f"Concurrency gate cancelled, {len(blocked)} waiter(s) released")


__all__ = [
    "ConcurrencyGate",
]
