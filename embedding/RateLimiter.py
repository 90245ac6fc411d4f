# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: RateLimiter
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class RateLimiter:
    """
    Process-wide minimum spacing between the *starts* of outbound calls.

    One instance is shared by every provider. Callers that arrive faster than
    the limit queue on the internal lock; nothing is ever rejected.
    """

    def __init__(self, min_interval_ms: int = 200, *, clock: Callable[[], float] = time.monotonic) -> None:
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")
        self.min_interval = min_interval_ms / 1000.0
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_start is not None:
                wait = self._last_start + self.min_interval - self._clock()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_start = self._clock()

    async def schedule(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Wait for a start slot, then await fn(*args, **kwargs)."""
        await self.acquire()
        return await fn(*args, **kwargs)
