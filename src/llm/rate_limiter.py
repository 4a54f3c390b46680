from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class ProviderRateLimiter:
    """
    Fixed one-minute window counter shared by every request in the process.

    The count is approximate under contention; it only throttles outgoing
    provider calls, it does not enforce an exact quota.
    """

    def __init__(
        self,
        max_per_minute: int = 60,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_per_minute = max_per_minute
        self.window_s = window_s
        self._clock = clock
        self._sleep = sleep
        self._count = 0
        self._window_started = clock()
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return self._count

    async def _reserve(self) -> float:
        """Take a slot if one is free; otherwise return how long to wait."""
        async with self._lock:
            now = self._clock()
            if now - self._window_started >= self.window_s:
                self._count = 0
                self._window_started = now
            if self._count >= self.max_per_minute:
                return self.window_s - (now - self._window_started)
            self._count += 1
            return 0.0

    async def acquire(self) -> None:
        while True:
            wait_s = await self._reserve()
            if wait_s <= 0:
                return
            logger.info(f"Rate limit reached. Waiting {wait_s:.1f}s...")
            await self._sleep(wait_s)
