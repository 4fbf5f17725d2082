"""Redis lock backends."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any

import redis
import redis.asyncio as aioredis

from cache_coalescer.duration import to_milliseconds
from cache_coalescer.errors import ConfigurationError
from cache_coalescer.locks.base import RedisBacked

logger = logging.getLogger(__name__)

# Atomic compare-and-delete: only the token holder may remove the lock key.
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisLock:
    """Sync Redis lock using SET NX PX and a Lua compare-and-delete."""

    def __init__(
        self,
        client: Any,  # redis.Redis or redis.ConnectionPool
    ) -> None:
        self._client = client

    @classmethod
    def for_store(cls, store: object) -> RedisLock:
        """Build a lock on the Redis connection a store exposes."""
        if not isinstance(store, RedisBacked):
            raise ConfigurationError(
                f"{type(store).__name__} does not expose a Redis connection; "
                "pass lock_client explicitly"
            )
        return cls(store.redis)

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        """Check out one connection for the duration of a call."""
        if isinstance(self._client, redis.ConnectionPool):
            with redis.Redis(
                connection_pool=self._client, single_connection_client=True
            ) as conn:
                yield conn
        else:
            yield self._client

    def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Set the lock key to ``token`` if it does not exist yet."""
        with self._connection() as conn:
            reply = conn.set(lock_key, token, nx=True, px=to_milliseconds(ttl))
        return bool(reply)

    def release(self, lock_key: str, token: str) -> bool:
        """Delete the lock key only if it still holds ``token``."""
        try:
            with self._connection() as conn:
                return bool(conn.eval(RELEASE_SCRIPT, 1, lock_key, token))
        except Exception:
            logger.warning("Failed to release lock %s", lock_key, exc_info=True)
            return False


class AsyncRedisLock:
    """Async Redis lock using SET NX PX and a Lua compare-and-delete."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis or redis.asyncio.ConnectionPool
    ) -> None:
        self._client = client

    @classmethod
    def for_store(cls, store: object) -> AsyncRedisLock:
        """Build a lock on the Redis connection a store exposes."""
        if not isinstance(store, RedisBacked):
            raise ConfigurationError(
                f"{type(store).__name__} does not expose a Redis connection; "
                "pass lock_client explicitly"
            )
        return cls(store.redis)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        """Check out one connection for the duration of a call."""
        if isinstance(self._client, aioredis.ConnectionPool):
            async with aioredis.Redis(
                connection_pool=self._client, single_connection_client=True
            ) as conn:
                yield conn
        else:
            yield self._client

    async def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Set the lock key to ``token`` if it does not exist yet."""
        async with self._connection() as conn:
            reply = await conn.set(lock_key, token, nx=True, px=to_milliseconds(ttl))
        return bool(reply)

    async def release(self, lock_key: str, token: str) -> bool:
        """Delete the lock key only if it still holds ``token``."""
        try:
            async with self._connection() as conn:
                return bool(await conn.eval(RELEASE_SCRIPT, 1, lock_key, token))
        except Exception:
            logger.warning("Failed to release lock %s", lock_key, exc_info=True)
            return False
