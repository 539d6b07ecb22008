"""Core lock primitives for the fleetlock package."""

from .manager import LockManager, new_token, run_exclusive
from .models import AcquireOutcome, AcquireResult
from .settings import LockSettings, RedisSettings
from .store import LockStore, StoreError
from .store_memory import InMemoryLockStore
from .store_redis import RedisLockStore

__all__ = [
    "LockManager",
    "new_token",
    "run_exclusive",
    "AcquireOutcome",
    "AcquireResult",
    "LockSettings",
    "RedisSettings",
    "LockStore",
    "StoreError",
    "InMemoryLockStore",
    "RedisLockStore",
]
