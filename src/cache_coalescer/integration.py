"""Mixins that give a cache store a ``fetch_coalesced`` method."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

from cache_coalescer.types import Duration

if TYPE_CHECKING:
    from cache_coalescer.stores.base import AsyncCacheStore, CacheStore

T = TypeVar("T")


class CoalescingStoreMixin:
    """Adds ``fetch_coalesced`` to a sync store class."""

    def fetch_coalesced(
        self, key: str, ttl: Duration, producer: Callable[[], T], **options: Any
    ) -> T | None:
        """Coalesced fetch against this store."""
        from cache_coalescer.coalescer import fetch

        return fetch(key, ttl, producer, store=cast("CacheStore", self), **options)


class AsyncCoalescingStoreMixin:
    """Adds ``fetch_coalesced`` to an async store class."""

    async def fetch_coalesced(
        self,
        key: str,
        ttl: Duration,
        producer: Callable[[], Awaitable[T]],
        **options: Any,
    ) -> T | None:
        """Coalesced fetch against this store."""
        from cache_coalescer.async_coalescer import fetch_async

        store = cast("AsyncCacheStore", self)
        return await fetch_async(key, ttl, producer, store=store, **options)
