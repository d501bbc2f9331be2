"""Implementation of a concurrency limiter.

Caps the number of remote calls in flight at any instant, across every
pipeline that shares the instance. Excess submissions wait in arrival order.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT = 25


@dataclass
class LimiterStats:
    """Statistics for limiter monitoring.

    Attributes:
        submitted: Total number of tasks submitted.
        completed: Tasks that finished, successfully or not.
        in_flight: Tasks currently holding a slot.
        peak_in_flight: Highest number of tasks observed holding a slot at once.
    """

    submitted: int = 0
    completed: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0


class ConcurrencyLimiter:
    """FIFO semaphore gate for async tasks."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT):
        """Initializes the limiter.

        Args:
            max_concurrent: Maximum number of tasks executing at the same time.
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        # asyncio.Semaphore wakes waiters in the order they started waiting
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._stats = LimiterStats()
        logger.info(f"ConcurrencyLimiter initialized: {max_concurrent} concurrent requests")

    @property
    def stats(self) -> LimiterStats:
        """Get current limiter statistics."""
        return self._stats

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Waits for a free slot, then awaits `func(*args)` while holding it.

        The slot is released unconditionally, including when the call fails.
        """
        async with self._semaphore:
            self._stats.in_flight += 1
            if self._stats.in_flight > self._stats.peak_in_flight:
                self._stats.peak_in_flight = self._stats.in_flight
            try:
                return await func(*args)
            finally:
                self._stats.in_flight -= 1
                self._stats.completed += 1

    def submit(self, func: Callable[..., Awaitable[T]], *args: Any) -> "asyncio.Task[T]":
        """Schedules `func(*args)` behind the limiter and returns its task.

        Must be called from within a running event loop.
        """
        self._stats.submitted += 1
        return asyncio.ensure_future(self.run(func, *args))
