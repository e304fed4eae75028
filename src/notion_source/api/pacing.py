"""Client-side request pacing to stay under Notion's rate limit (~3 req/s)."""

import asyncio
import time


class RequestPacer:
    """Spaces request starts at least ``1 / requests_per_second`` apart.

    Shared by all concurrent callers of one fetcher. Each caller reserves the
    next free slot under the lock and sleeps outside it.
    """

    def __init__(self, requests_per_second: float):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self._interval = 1.0 / requests_per_second
        self._lock = asyncio.Lock()
        self._next_slot = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    async def wait(self) -> None:
        async with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval
        delay = slot - now
        if delay > 0:
            await asyncio.sleep(delay)
