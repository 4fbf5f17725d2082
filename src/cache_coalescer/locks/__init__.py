"""Lock backends for cache_coalescer."""

from contextlib import suppress

from cache_coalescer.locks.base import (
    AsyncLockClient,
    AsyncLockProvider,
    LockClient,
    LockProvider,
    RedisBacked,
)
from cache_coalescer.locks.memory import AsyncInMemoryLock, InMemoryLock

# Optional backends - only available when dependencies are installed
with suppress(ImportError):
    from cache_coalescer.locks.redis import AsyncRedisLock, RedisLock


def default_lock_for(store: object, fallback: LockClient | None = None) -> LockClient:
    """Pick the lock backend for a store.

    Stores that can hand out a lock on their own backend do so; everything
    else shares ``fallback`` (a fresh in-process lock if none is given).
    """
    if isinstance(store, LockProvider):
        return store.lock_client()
    return fallback if fallback is not None else InMemoryLock()


def default_async_lock_for(
    store: object, fallback: AsyncLockClient | None = None
) -> AsyncLockClient:
    """Async counterpart of :func:`default_lock_for`."""
    if isinstance(store, AsyncLockProvider):
        return store.lock_client()
    return fallback if fallback is not None else AsyncInMemoryLock()


__all__ = [
    "AsyncInMemoryLock",
    "AsyncLockClient",
    "AsyncLockProvider",
    "AsyncRedisLock",
    "InMemoryLock",
    "LockClient",
    "LockProvider",
    "RedisBacked",
    "RedisLock",
    "default_async_lock_for",
    "default_lock_for",
]
