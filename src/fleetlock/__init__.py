"""Redis-backed distributed locks for fleets of cooperating workers."""

from .core import (
    AcquireOutcome,
    AcquireResult,
    InMemoryLockStore,
    LockManager,
    LockSettings,
    LockStore,
    RedisLockStore,
    RedisSettings,
    StoreError,
    new_token,
    run_exclusive,
)

__all__ = [
    "__version__",
    "AcquireOutcome",
    "AcquireResult",
    "InMemoryLockStore",
    "LockManager",
    "LockSettings",
    "LockStore",
    "RedisLockStore",
    "RedisSettings",
    "StoreError",
    "new_token",
    "run_exclusive",
]

__version__ = "0.1.0"
