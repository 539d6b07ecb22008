"""Abstract key-value store capability used by the lock manager."""

from __future__ import annotations

from typing import Protocol


class StoreError(RuntimeError):
    """Raised by a store backend when it cannot talk to the underlying store."""


class LockStore(Protocol):
    """The two atomic primitives a lock needs from a shared key-value store."""

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """Write ``value`` at ``key`` with a TTL unless the key already exists."""
        ...

    async def compare_and_delete(self, key: str, value: str) -> bool:
        """Delete ``key`` only if it currently holds ``value``; return whether it was deleted."""
        ...

    async def aclose(self) -> None:
        ...
