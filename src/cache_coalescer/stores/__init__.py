"""Cache store protocols and adapters."""

from contextlib import suppress

from cache_coalescer.stores.base import AsyncCacheStore, CacheStore

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from cache_coalescer.stores.redis import AsyncRedisStore, RedisStore

__all__ = [
    "AsyncCacheStore",
    "AsyncRedisStore",
    "CacheStore",
    "RedisStore",
]
