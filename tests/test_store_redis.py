"""RedisLockStore tests against fakeredis (Lua scripting needs lupa)."""

from __future__ import annotations

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from fleetlock.core.manager import LockManager
from fleetlock.core.settings import LockSettings
from fleetlock.core.store import StoreError
from fleetlock.core.store_redis import RedisLockStore

fakeredis = pytest.importorskip("fakeredis", reason="fakeredis is required for Redis store tests")
pytest.importorskip("lupa", reason="lupa is required for fakeredis Lua scripting")


@pytest.fixture
def redis_client():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


class BrokenRedis:
    async def set(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def eval(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def aclose(self):
        raise RedisConnectionError("Connection refused")


@pytest.mark.asyncio
async def test_set_if_absent_uses_nx_and_px(redis_client):
    await redis_client.flushall()
    store = RedisLockStore(client=redis_client)

    assert await store.set_if_absent("lock:k", "A", 30000) is True
    assert await store.set_if_absent("lock:k", "B", 30000) is False
    assert await redis_client.get("lock:k") == "A"
    ttl = await redis_client.pttl("lock:k")
    assert 0 < ttl <= 30000


@pytest.mark.asyncio
async def test_compare_and_delete_checks_token(redis_client):
    await redis_client.flushall()
    store = RedisLockStore(client=redis_client)
    await store.set_if_absent("lock:k", "A", 30000)

    assert await store.compare_and_delete("lock:k", "B") is False
    assert await redis_client.get("lock:k") == "A"
    assert await store.compare_and_delete("lock:k", "A") is True
    assert await redis_client.exists("lock:k") == 0
    assert await store.compare_and_delete("lock:k", "A") is False


@pytest.mark.asyncio
async def test_lease_expires_in_redis(redis_client):
    await redis_client.flushall()
    store = RedisLockStore(client=redis_client)
    assert await store.set_if_absent("lock:k", "A", 50) is True
    await asyncio.sleep(0.15)
    assert await store.set_if_absent("lock:k", "B", 50) is True


@pytest.mark.asyncio
async def test_redis_errors_become_store_errors():
    store = RedisLockStore(client=BrokenRedis())
    with pytest.raises(StoreError) as excinfo:
        await store.set_if_absent("lock:k", "A", 1000)
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)
    with pytest.raises(StoreError):
        await store.compare_and_delete("lock:k", "A")
    await store.aclose()


@pytest.mark.asyncio
async def test_manager_collapses_redis_outage_to_false():
    manager = LockManager(RedisLockStore(client=BrokenRedis()), LockSettings(retry_interval_millis=1))
    result = await manager.try_acquire_with_retry("publish:feed-42", "A-123")
    assert not result
    assert result.attempts == 3
    assert await manager.release("publish:feed-42", "A-123") is False


@pytest.mark.asyncio
async def test_manager_end_to_end(redis_client):
    await redis_client.flushall()
    settings = LockSettings(retry_interval_millis=5)
    first = LockManager(RedisLockStore(client=redis_client), settings)
    second = LockManager(RedisLockStore(client=redis_client), settings)

    assert await first.acquire("publish:feed-42", "A-123") is True
    assert await second.acquire_with_retry("publish:feed-42", "B-456") is False
    assert await second.release("publish:feed-42", "B-456") is False
    assert await first.release("publish:feed-42", "A-123") is True
    assert await second.acquire_with_retry("publish:feed-42", "B-456") is True
    assert await redis_client.get("publish:feed-42") == "B-456"
