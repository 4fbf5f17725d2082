"""Redis cache stores."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis
import redis.asyncio as aioredis

from cache_coalescer.duration import to_milliseconds
from cache_coalescer.integration import AsyncCoalescingStoreMixin, CoalescingStoreMixin
from cache_coalescer.locks.redis import AsyncRedisLock, RedisLock
from cache_coalescer.types import NULL_VALUE, NullValue

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    """Serialize a value (or the null marker) to JSON."""
    if isinstance(value, NullValue):
        return json.dumps({"null": True})
    return json.dumps({"value": value})


def _decode(data: bytes | str) -> Any:
    """Deserialize JSON written by ``_encode``.

    Anything else under the key reads as absent, so it gets recomputed and
    overwritten.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        obj = json.loads(data)
    except ValueError:
        obj = None
    if not isinstance(obj, dict) or not ("null" in obj or "value" in obj):
        logger.warning("Ignoring value not written by this store")
        return None
    if obj.get("null"):
        return NULL_VALUE
    return obj.get("value")


class RedisStore(CoalescingStoreMixin):
    """Sync Redis cache store."""

    def __init__(
        self,
        client: Any,  # redis.Redis
        *,
        prefix: str | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(
        cls, url: str, *, prefix: str | None = None, **kwargs: Any
    ) -> RedisStore:
        """Create a store with a new client for ``url``."""
        return cls(redis.Redis.from_url(url, **kwargs), prefix=prefix)

    @property
    def redis(self) -> Any:
        """The underlying Redis client."""
        return self._client

    def _key(self, key: str) -> str:
        """Generate full Redis key."""
        return f"{self._prefix}:{key}" if self._prefix else key

    def read(self, key: str) -> Any | None:
        """Get the value for key, or None if absent."""
        data = self._client.get(self._key(key))
        if data is None:
            return None
        return _decode(data)

    def write(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key with automatic expiration."""
        self._client.set(
            self._key(key), _encode(value), px=to_milliseconds(ttl)
        )

    def delete(self, key: str) -> None:
        """Delete a key."""
        self._client.delete(self._key(key))

    def lock_client(self) -> RedisLock:
        """Lock sharing this store's connection."""
        return RedisLock(self._client)

    def disconnect(self) -> None:
        """Close the Redis connection."""
        self._client.close()


class AsyncRedisStore(AsyncCoalescingStoreMixin):
    """Async Redis cache store."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(
        cls, url: str, *, prefix: str | None = None, **kwargs: Any
    ) -> AsyncRedisStore:
        """Create a store with a new client for ``url``."""
        return cls(aioredis.Redis.from_url(url, **kwargs), prefix=prefix)

    @property
    def redis(self) -> Any:
        """The underlying Redis client."""
        return self._client

    def _key(self, key: str) -> str:
        """Generate full Redis key."""
        return f"{self._prefix}:{key}" if self._prefix else key

    async def read(self, key: str) -> Any | None:
        """Get the value for key, or None if absent."""
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        return _decode(data)

    async def write(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key with automatic expiration."""
        await self._client.set(
            self._key(key), _encode(value), px=to_milliseconds(ttl)
        )

    async def delete(self, key: str) -> None:
        """Delete a key."""
        await self._client.delete(self._key(key))

    def lock_client(self) -> AsyncRedisLock:
        """Lock sharing this store's connection."""
        return AsyncRedisLock(self._client)

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
