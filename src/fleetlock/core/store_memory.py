"""In-process lock store for tests and single-host development."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple


Clock = Callable[[], float]


class InMemoryLockStore:
    """Dictionary-backed store honouring the same atomicity as the Redis backend.

    Entries expire lazily: an expired key is treated as absent the next time it
    is touched. ``clock`` returns seconds and defaults to ``time.monotonic``;
    tests pass a controllable clock to step over lease expiry.
    """

    def __init__(self, *, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}  # key -> (value, expires_at)
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._entries[key] = (value, self._clock() + ttl_ms / 1000.0)
            return True

    async def compare_and_delete(self, key: str, value: str) -> bool:
        async with self._lock:
            if self._live(key) != value:
                return False
            del self._entries[key]
            return True

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live(key)

    def ttl_remaining(self, key: str) -> Optional[float]:
        """Seconds until ``key`` expires, or None when it is not held."""
        if self._live(key) is None:
            return None
        return self._entries[key][1] - self._clock()

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live(key) is not None)

    async def aclose(self) -> None:
        async with self._lock:
            self._entries.clear()
