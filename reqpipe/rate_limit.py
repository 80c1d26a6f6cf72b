from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional

import httpx


def host_key(request: httpx.Request) -> str:
    """Rate-limit key for a request: its lowercase hostname, without port."""
    return (request.url.host or "").lower()


class HostRateLimiter:
    """Minimum-interval-per-host limiter (polite pacing, not a bypass tool).

    Each key gets its own lock, held across the read of the previous
    admission, the sleep and the write of the new one. Two callers racing
    for the same host are serialized; callers for different hosts never
    wait on each other.
    """

    def __init__(
        self,
        min_interval_sec: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_sec = float(min_interval_sec)
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last: Dict[str, float] = {}

    @property
    def enabled(self) -> bool:
        return self.min_interval_sec > 0

    async def wait(self, key: str) -> None:
        if not self.enabled or not key:
            return
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            last = self._last.get(key)
            if last is not None:
                # asyncio may wake a timer slightly early; re-check until due
                remaining = self.min_interval_sec - (self._clock() - last)
                while remaining > 0:
                    await asyncio.sleep(remaining)
                    remaining = self.min_interval_sec - (self._clock() - last)
            self._last[key] = self._clock()

    def last_admission(self, key: str) -> Optional[float]:
        return self._last.get(key)
