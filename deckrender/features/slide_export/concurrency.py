from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyGate:
    """Admit at most ``limit`` concurrent tasks; later callers wait for a free slot.

    Waiters are parked on a semaphore and woken in arrival order when a slot is
    released, so no polling is involved.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("Concurrency limit must be at least 1.")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._active = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._active

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        async with self._semaphore:
            self._active += 1
            logger.debug("Render slot acquired (%d/%d in use)", self._active, self._limit)
            try:
                return await task()
            finally:
                self._active -= 1
                logger.debug("Render slot released (%d/%d in use)", self._active, self._limit)
