"""cache_coalescer - cache stampede protection with distributed locks."""

from contextlib import suppress

from cache_coalescer.async_coalescer import AsyncCoalescer, fetch_async
from cache_coalescer.coalescer import Coalescer, fetch
from cache_coalescer.config import (
    CoalescerSettings,
    configure,
    default_store,
    get_settings,
    reset,
)
from cache_coalescer.decorators import coalesced

# Duration parsing
from cache_coalescer.duration import parse_duration
from cache_coalescer.errors import CoalescerError, ConfigurationError
from cache_coalescer.integration import AsyncCoalescingStoreMixin, CoalescingStoreMixin
from cache_coalescer.keys import lock_key_for, stale_key_for

# Locks
from cache_coalescer.locks import (
    AsyncInMemoryLock,
    AsyncLockClient,
    AsyncLockProvider,
    InMemoryLock,
    LockClient,
    LockProvider,
    default_async_lock_for,
    default_lock_for,
)

# Stores
from cache_coalescer.stores import AsyncCacheStore, CacheStore

# Core types
from cache_coalescer.types import (
    NULL_VALUE,
    Duration,
    FetchOptions,
    Hit,
    Lookup,
    Miss,
    NullHit,
    NullValue,
)

# Optional backends - only available when dependencies are installed
with suppress(ImportError):
    from cache_coalescer.locks import AsyncRedisLock, RedisLock

with suppress(ImportError):
    from cache_coalescer.stores import AsyncRedisStore, RedisStore

__version__ = "0.1.0"

__all__ = [
    "NULL_VALUE",
    "AsyncCacheStore",
    "AsyncCoalescer",
    "AsyncCoalescingStoreMixin",
    "AsyncInMemoryLock",
    "AsyncLockClient",
    "AsyncLockProvider",
    "AsyncRedisLock",
    "AsyncRedisStore",
    "CacheStore",
    "Coalescer",
    "CoalescerError",
    "CoalescerSettings",
    "CoalescingStoreMixin",
    "ConfigurationError",
    "Duration",
    "FetchOptions",
    "Hit",
    "InMemoryLock",
    "LockClient",
    "LockProvider",
    "Lookup",
    "Miss",
    "NullHit",
    "NullValue",
    "RedisLock",
    "RedisStore",
    "coalesced",
    "configure",
    "default_async_lock_for",
    "default_lock_for",
    "default_store",
    "fetch",
    "fetch_async",
    "get_settings",
    "lock_key_for",
    "parse_duration",
    "reset",
    "stale_key_for",
]
