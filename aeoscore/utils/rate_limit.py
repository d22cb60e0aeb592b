"""Per-shop request throttling."""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict


class RateLimiter:
    """Enforce a minimum interval between request starts for each key.

    Keys are usually shop hosts, so one slow shop never delays another.
    """

    def __init__(self, *, rate: float = 2.0) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.min_interval = 1.0 / rate
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_request: dict[str, float] = {}

    async def wait(self, key: str) -> None:
        async with self._locks[key]:
            last = self._last_request.get(key)
            if last is not None:
                elapsed = time.monotonic() - last
                if elapsed < self.min_interval:
                    await asyncio.sleep(self.min_interval - elapsed)
            self._last_request[key] = time.monotonic()
