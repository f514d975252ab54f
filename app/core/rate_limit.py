"""In-memory sliding-window rate limiting for sign-in attempts."""
from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from typing import Deque, DefaultDict


class RateLimiter:
    """Sliding window of attempt timestamps per key, guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._attempts: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def is_allowed(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record an attempt for ``key`` and report whether it fits the window."""
        async with self._lock:
            now = time.monotonic()
            window_start = now - window_seconds
            bucket = self._attempts[key]

            while bucket and bucket[0] < window_start:
                bucket.popleft()

            if len(bucket) >= max_requests:
                return False

            bucket.append(now)
            return True

    def reset(self) -> None:
        self._attempts.clear()


signin_rate_limiter = RateLimiter()
