"""Async coalesced fetch. Same steps as :mod:`cache_coalescer.coalescer`."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar, cast

from cache_coalescer import config
from cache_coalescer.coalescer import check_producer, resolve_options
from cache_coalescer.duration import parse_duration
from cache_coalescer.keys import lock_key_for, stale_key_for
from cache_coalescer.locks import AsyncLockClient, default_async_lock_for
from cache_coalescer.stores.base import AsyncCacheStore
from cache_coalescer.types import (
    NULL_VALUE,
    Duration,
    FetchOptions,
    Lookup,
    Miss,
    classify,
    unwrap,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class AsyncCoalescer:
    """Async coalescer for stores and producers that are coroutines."""

    def __init__(
        self,
        store: AsyncCacheStore,
        *,
        lock_client: AsyncLockClient | None = None,
        options: FetchOptions | None = None,
    ) -> None:
        self._store = store
        self._lock_client = lock_client or default_async_lock_for(store)
        self._options = options or FetchOptions()

    @property
    def store(self) -> AsyncCacheStore:
        return self._store

    @property
    def lock_client(self) -> AsyncLockClient:
        return self._lock_client

    async def _lookup(self, key: str, options: FetchOptions) -> Lookup:
        return classify(await self._store.read(key), cache_nil=options.cache_nil)

    async def _lookup_or_miss(self, key: str, options: FetchOptions) -> Lookup:
        try:
            return await self._lookup(key, options)
        except Exception:
            logger.warning("Failed to read %s, treating as miss", key, exc_info=True)
            return Miss()

    async def fetch(
        self,
        key: str,
        ttl: Duration,
        producer: Callable[[], Awaitable[T]],
        *,
        lock_ttl: Duration | None = None,
        wait_timeout: Duration | None = None,
        wait_sleep: Duration | None = None,
        stale_ttl: Duration | None = None,
        cache_nil: bool | None = None,
    ) -> T | None:
        """Return the cached value for ``key`` or compute it at most once.

        See :meth:`cache_coalescer.Coalescer.fetch`; ``producer`` here
        returns an awaitable.
        """
        check_producer(producer)
        ttl_seconds = parse_duration(ttl)
        options = resolve_options(
            self._options,
            lock_ttl=lock_ttl,
            wait_timeout=wait_timeout,
            wait_sleep=wait_sleep,
            stale_ttl=stale_ttl,
            cache_nil=cache_nil,
        )

        found = await self._lookup(key, options)
        if not isinstance(found, Miss):
            logger.debug("Cache hit for %s", key)
            return cast(T, unwrap(found))

        lock_key = lock_key_for(key)
        token = str(uuid.uuid4())

        if await self._lock_client.acquire(lock_key, token, options.lock_ttl):
            logger.debug("Lock acquired for %s, computing", key)
            return await self._compute_and_store(
                key, ttl_seconds, producer, lock_key, token, options
            )

        logger.debug(
            "Lock for %s held elsewhere, waiting up to %ss", key, options.wait_timeout
        )
        deadline = time.monotonic() + options.wait_timeout
        while True:
            found = await self._lookup_or_miss(key, options)
            if not isinstance(found, Miss):
                logger.debug("Value for %s appeared while waiting", key)
                return cast(T, unwrap(found))
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(options.wait_sleep)

        if await self._lock_client.acquire(lock_key, token, options.lock_ttl):
            logger.debug("Lock acquired for %s after waiting, computing", key)
            return await self._compute_and_store(
                key, ttl_seconds, producer, lock_key, token, options
            )

        if options.stale_ttl is not None:
            found = await self._lookup_or_miss(stale_key_for(key), options)
            if not isinstance(found, Miss):
                logger.debug("Serving stale value for %s", key)
                return cast(T, unwrap(found))

        logger.debug("Gave up on %s: no value, lock busy, no stale copy", key)
        return None

    async def _compute_and_store(
        self,
        key: str,
        ttl: float,
        producer: Callable[[], Awaitable[T]],
        lock_key: str,
        token: str,
        options: FetchOptions,
    ) -> T:
        """Run the producer and store its result. Must hold the lock."""
        try:
            value = await producer()
            stored = NULL_VALUE if options.cache_nil and value is None else value
            await self._store.write(key, stored, ttl)
            if options.stale_ttl is not None:
                await self._store.write(
                    stale_key_for(key), stored, ttl + options.stale_ttl
                )
            return value
        finally:
            if not await self._lock_client.release(lock_key, token):
                logger.debug("Lock %s was not released by this caller", lock_key)


async def fetch_async(
    key: str,
    ttl: Duration,
    producer: Callable[[], Awaitable[T]],
    *,
    store: AsyncCacheStore,
    lock_client: AsyncLockClient | None = None,
    lock_ttl: Duration | None = None,
    wait_timeout: Duration | None = None,
    wait_sleep: Duration | None = None,
    stale_ttl: Duration | None = None,
    cache_nil: bool | None = None,
) -> T | None:
    """One-shot async coalesced fetch.

    Options default to the process settings; without a lock the store's own
    lock is used, else an in-process lock shared by all callers.
    """
    check_producer(producer)
    if lock_client is None:
        lock_client = default_async_lock_for(store, config.shared_async_memory_lock)
    coalescer = AsyncCoalescer(
        store,
        lock_client=lock_client,
        options=config.current_settings().fetch_options(),
    )
    return await coalescer.fetch(
        key,
        ttl,
        producer,
        lock_ttl=lock_ttl,
        wait_timeout=wait_timeout,
        wait_sleep=wait_sleep,
        stale_ttl=stale_ttl,
        cache_nil=cache_nil,
    )
