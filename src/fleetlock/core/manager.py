"""Distributed lock manager layered on a shared key-value store."""

from __future__ import annotations

import asyncio
import os
import socket
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, Tuple, TypeVar

from fleetlock.core.models import AcquireOutcome, AcquireResult
from fleetlock.core.settings import LockSettings
from fleetlock.core.store import LockStore, StoreError
from fleetlock.core.store_redis import RedisLockStore
from fleetlock.utils.logging import get_logger


T = TypeVar("T")


def new_token(owner: Optional[str] = None) -> str:
    """Return a token unique to one acquisition attempt.

    The owner part (hostname and pid by default) only helps when reading the
    store by hand; uniqueness comes from the random suffix.
    """
    owner = owner or f"{socket.gethostname()}-{os.getpid()}"
    return f"{owner}:{uuid.uuid4().hex}"


def _require(name: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")


class LockManager:
    """Best-effort, non-reentrant mutual exclusion over named resources.

    All lock state lives in the store; the manager only carries policy, so one
    instance can be shared by any number of tasks. Every store failure is
    logged and reported as "not acquired" / "not released".
    """

    def __init__(self, store: LockStore, settings: Optional[LockSettings] = None) -> None:
        self.store = store
        self.settings = settings or LockSettings()
        self.logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: LockSettings) -> "LockManager":
        store = RedisLockStore(
            settings.redis.url,
            password=settings.redis.password,
            socket_timeout=settings.redis.socket_timeout,
        )
        return cls(store, settings)

    def _store_key(self, lock_key: str) -> str:
        return f"{self.settings.key_prefix}{lock_key}"

    async def _attempt(self, lock_key: str, lock_value: str) -> AcquireOutcome:
        try:
            written = await self.store.set_if_absent(
                self._store_key(lock_key), lock_value, self.settings.lock_timeout_ms
            )
        except StoreError as exc:
            self.logger.warning("Lock store unavailable while acquiring %s: %s", lock_key, exc)
            return AcquireOutcome.STORE_ERROR
        return AcquireOutcome.ACQUIRED if written else AcquireOutcome.CONTENDED

    async def acquire(self, lock_key: str, lock_value: str) -> bool:
        """Make a single attempt to take ``lock_key`` for ``lock_value``.

        Returns False when another holder has the key or the store could not
        be reached.
        """
        _require("lock_key", lock_key)
        _require("lock_value", lock_value)
        return await self._attempt(lock_key, lock_value) is AcquireOutcome.ACQUIRED

    async def _pause(self, interval: float, cancel: Optional[asyncio.Event]) -> bool:
        """Wait between attempts; True when ``cancel`` fired during the wait."""
        if cancel is None:
            await asyncio.sleep(interval)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def try_acquire_with_retry(
        self,
        lock_key: str,
        lock_value: str,
        max_retries: Optional[int] = None,
        retry_interval: Optional[float] = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> AcquireResult:
        """Attempt up to ``max_retries`` times with a fixed pause in between.

        ``max_retries`` counts the first attempt; ``retry_interval`` is in
        seconds. Both default to the configured policy. Setting ``cancel``
        stops the loop at once, including mid-pause.
        """
        _require("lock_key", lock_key)
        _require("lock_value", lock_value)
        budget = self.settings.max_retries if max_retries is None else max_retries
        interval = self.settings.retry_interval if retry_interval is None else retry_interval
        if budget < 1:
            raise ValueError("max_retries must be at least 1")
        if interval < 0:
            raise ValueError("retry_interval must not be negative")

        self.logger.debug("Attempting to acquire lock with retry, key=%s, token=%s", lock_key, lock_value)
        started = time.monotonic()
        attempts = 0
        outcome = AcquireOutcome.CONTENDED
        while attempts < budget:
            if cancel is not None and cancel.is_set():
                outcome = AcquireOutcome.CANCELLED
                break
            attempts += 1
            outcome = await self._attempt(lock_key, lock_value)
            if outcome is AcquireOutcome.ACQUIRED:
                self.logger.debug("Lock acquired, key=%s, token=%s, attempt=%d", lock_key, lock_value, attempts)
                break
            self.logger.debug(
                "Failed to acquire lock (%s), key=%s, attempt=%d/%d", outcome.value, lock_key, attempts, budget
            )
            if attempts < budget and await self._pause(interval, cancel):
                outcome = AcquireOutcome.CANCELLED
                break

        result = AcquireResult(
            key=lock_key,
            token=lock_value,
            outcome=outcome,
            attempts=attempts,
            elapsed=time.monotonic() - started,
        )
        if outcome is AcquireOutcome.CANCELLED:
            self.logger.info("Lock acquisition cancelled, key=%s, attempts=%d", lock_key, attempts)
        elif not result.acquired:
            self.logger.info("Abandoning attempt to acquire lock, key=%s, attempts=%d", lock_key, attempts)
        return result

    async def acquire_with_retry(
        self,
        lock_key: str,
        lock_value: str,
        max_retries: Optional[int] = None,
        retry_interval: Optional[float] = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> bool:
        result = await self.try_acquire_with_retry(
            lock_key, lock_value, max_retries, retry_interval, cancel=cancel
        )
        return result.acquired

    async def release(self, lock_key: str, lock_value: str) -> bool:
        """Release ``lock_key`` only if it is still held with ``lock_value``.

        Returns False when the lease already expired, another holder owns the
        key, or the store could not be reached.
        """
        _require("lock_key", lock_key)
        _require("lock_value", lock_value)
        self.logger.debug("Attempting to release lock, key=%s, token=%s", lock_key, lock_value)
        try:
            released = await self.store.compare_and_delete(self._store_key(lock_key), lock_value)
        except StoreError as exc:
            self.logger.warning("Lock store unavailable while releasing %s: %s", lock_key, exc)
            return False
        self.logger.debug("Lock release result=%s, key=%s, token=%s", released, lock_key, lock_value)
        return released

    @asynccontextmanager
    async def lock(
        self,
        lock_key: str,
        *,
        token: Optional[str] = None,
        retry: bool = True,
        cancel: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[AcquireResult]:
        """Hold ``lock_key`` for the body of an ``async with`` block.

        The yielded result is falsy when the lock was not obtained; the body
        still runs and must check it.
        """
        token = token or new_token()
        result = await self.try_acquire_with_retry(
            lock_key, token, None if retry else 1, cancel=cancel
        )
        try:
            yield result
        finally:
            if result.acquired and not await self.release(lock_key, token):
                self.logger.warning("Lock %s expired or was taken over before release", lock_key)

    async def aclose(self) -> None:
        await self.store.aclose()


async def run_exclusive(
    manager: LockManager,
    lock_key: str,
    job: Callable[[], Awaitable[T]],
    *,
    token: Optional[str] = None,
    cancel: Optional[asyncio.Event] = None,
) -> Tuple[bool, Optional[T]]:
    """Run ``job`` only while holding ``lock_key``.

    Returns ``(False, None)`` without calling ``job`` when another worker holds
    the lock, otherwise ``(True, result)``.
    """
    async with manager.lock(lock_key, token=token, cancel=cancel) as result:
        if not result:
            manager.logger.info("Another worker holds %s; skipping", lock_key)
            return False, None
        return True, await job()
