"""Redis-backed lock store using SET NX PX semantics."""

from __future__ import annotations

import os
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .store import StoreError
from fleetlock.utils.logging import get_logger


# release only if token matches
_RELEASE_LUA = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RedisLockStore:
    """Lock store talking to a Redis server (or cluster-compatible proxy)."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        password: Optional[str] = None,
        socket_timeout: Optional[float] = None,
        client: Optional[Redis] = None,
    ) -> None:
        self.logger = get_logger(__name__)
        if client is not None:
            self._redis = client
        else:
            self._redis = Redis.from_url(
                url or os.getenv("REDIS_URL", DEFAULT_REDIS_URL),
                password=password,
                socket_timeout=socket_timeout,
                decode_responses=True,
            )

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        try:
            result = await self._redis.set(key, value, px=ttl_ms, nx=True)
        except RedisError as exc:
            raise StoreError(f"SET NX failed for {key}: {exc}") from exc
        return bool(result)

    async def compare_and_delete(self, key: str, value: str) -> bool:
        try:
            result = await self._redis.eval(_RELEASE_LUA, 1, key, value)
        except RedisError as exc:
            raise StoreError(f"conditional delete failed for {key}: {exc}") from exc
        return result == 1

    async def aclose(self) -> None:
        try:
            await self._redis.aclose()
        except RedisError:
            self.logger.debug("Error while closing Redis connection", exc_info=True)
