from __future__ import annotations

import asyncio


class ConcurrencyLimiter:
    """Process-wide cap on LLM calls in flight.

    Several calls can be mid-turn at once; the provider quota is shared, so
    every router and client built from the same settings shares one limiter.
    """

    def __init__(self, max_inflight: int = 5):
        if max_inflight < 1:
            raise ValueError("max_inflight must be >= 1")
        self.max_inflight = max_inflight
        self._sem = asyncio.Semaphore(max_inflight)
        self._inflight = 0

    @property
    def inflight(self) -> int:
        return self._inflight

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self._sem.acquire()
        self._inflight += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._inflight -= 1
        self._sem.release()
        return False
