from __future__ import annotations

from typing import List

import pytest

from fleetlock.core.settings import LockSettings
from fleetlock.core.store import StoreError
from fleetlock.core.store_memory import InMemoryLockStore


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore(InMemoryLockStore):
    """Memory store that records every set attempt."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.set_calls: List[str] = []

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        self.set_calls.append(value)
        return await super().set_if_absent(key, value, ttl_ms)


class FlakyStore(CountingStore):
    """Fails the first ``failures`` store calls with a StoreError."""

    def __init__(self, failures: int = 1, **kwargs) -> None:
        super().__init__(**kwargs)
        self.failures = failures

    def _maybe_fail(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise StoreError("connection refused")

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        self._maybe_fail()
        return await super().set_if_absent(key, value, ttl_ms)

    async def compare_and_delete(self, key: str, value: str) -> bool:
        self._maybe_fail()
        return await super().compare_and_delete(key, value)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> LockSettings:
    return LockSettings(lock_timeout_seconds=30, max_retries=3, retry_interval_millis=10)


@pytest.fixture
def store(clock: FakeClock) -> CountingStore:
    return CountingStore(clock=clock)
