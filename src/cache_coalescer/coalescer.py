"""Sync coalesced fetch.

A fetch for a missing key goes through these steps:

1. Read the key; return on a hit.
2. Try to take the key's lock. The winner computes (step 5).
3. Losers poll the store until ``wait_timeout`` for the winner's result.
4. After the wait, try the lock once more; a winner computes (step 5).
5. Run the producer, write the result (and its stale copy), release the lock.
6. Otherwise serve the stale copy if ``stale_ttl`` is set, else ``None``.

The lock expires on its own after ``lock_ttl``. A producer slower than that
can end up running twice; callers never block forever. Read errors while
waiting or reading the stale copy count as misses.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar, cast

from cache_coalescer import config
from cache_coalescer.duration import parse_duration
from cache_coalescer.keys import lock_key_for, stale_key_for
from cache_coalescer.locks import LockClient, default_lock_for
from cache_coalescer.stores.base import CacheStore
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


def resolve_options(
    base: FetchOptions,
    *,
    lock_ttl: Duration | None = None,
    wait_timeout: Duration | None = None,
    wait_sleep: Duration | None = None,
    stale_ttl: Duration | None = None,
    cache_nil: bool | None = None,
) -> FetchOptions:
    """Overlay per-call overrides on top of default options.

    ``None`` keeps the default. ``stale_ttl=False`` switches the stale copy off.
    """
    overrides: dict[str, Any] = {}
    if lock_ttl is not None:
        overrides["lock_ttl"] = parse_duration(lock_ttl)
    if wait_timeout is not None:
        overrides["wait_timeout"] = parse_duration(wait_timeout)
    if wait_sleep is not None:
        overrides["wait_sleep"] = parse_duration(wait_sleep)
    if stale_ttl is False:
        overrides["stale_ttl"] = None
    elif stale_ttl is not None:
        overrides["stale_ttl"] = parse_duration(stale_ttl)
    if cache_nil is not None:
        overrides["cache_nil"] = cache_nil
    return replace(base, **overrides) if overrides else base


def check_producer(producer: object) -> None:
    """Fail loudly when no usable producer was supplied."""
    if not callable(producer):
        raise TypeError("producer must be a zero-argument callable")


class Coalescer:
    """Coalesces concurrent recomputation of missing cache keys."""

    def __init__(
        self,
        store: CacheStore,
        *,
        lock_client: LockClient | None = None,
        options: FetchOptions | None = None,
    ) -> None:
        self._store = store
        self._lock_client = lock_client or default_lock_for(store)
        self._options = options or FetchOptions()

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def lock_client(self) -> LockClient:
        return self._lock_client

    def fetch(
        self,
        key: str,
        ttl: Duration,
        producer: Callable[[], T],
        *,
        lock_ttl: Duration | None = None,
        wait_timeout: Duration | None = None,
        wait_sleep: Duration | None = None,
        stale_ttl: Duration | None = None,
        cache_nil: bool | None = None,
    ) -> T | None:
        """Return the cached value for ``key`` or compute it at most once.

        Args:
            key: Cache key.
            ttl: Freshness lifetime of the computed value.
            producer: Zero-argument callable computing the value on a miss.
            lock_ttl: How long the recompute lock is held at most.
            wait_timeout: How long to poll for another caller's result.
            wait_sleep: Poll interval.
            stale_ttl: Keep a stale copy for ``ttl + stale_ttl`` and serve it
                when the value can be neither read nor computed. ``False``
                disables a configured default for this call.
            cache_nil: Cache a ``None`` result instead of recomputing it.

        Returns:
            The cached or computed value, or ``None`` when neither was
            available in time.
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

        found = self._lookup(key, options)
        if not isinstance(found, Miss):
            logger.debug("Cache hit for %s", key)
            return cast(T, unwrap(found))

        lock_key = lock_key_for(key)
        token = str(uuid.uuid4())

        if self._lock_client.acquire(lock_key, token, options.lock_ttl):
            logger.debug("Lock acquired for %s, computing", key)
            return self._compute_and_store(
                key, ttl_seconds, producer, lock_key, token, options
            )

        logger.debug(
            "Lock for %s held elsewhere, waiting up to %ss", key, options.wait_timeout
        )
        deadline = time.monotonic() + options.wait_timeout
        while True:
            found = self._lookup_or_miss(key, options)
            if not isinstance(found, Miss):
                logger.debug("Value for %s appeared while waiting", key)
                return cast(T, unwrap(found))
            if time.monotonic() >= deadline:
                break
            time.sleep(options.wait_sleep)

        if self._lock_client.acquire(lock_key, token, options.lock_ttl):
            logger.debug("Lock acquired for %s after waiting, computing", key)
            return self._compute_and_store(
                key, ttl_seconds, producer, lock_key, token, options
            )

        if options.stale_ttl is not None:
            found = self._lookup_or_miss(stale_key_for(key), options)
            if not isinstance(found, Miss):
                logger.debug("Serving stale value for %s", key)
                return cast(T, unwrap(found))

        logger.debug("Gave up on %s: no value, lock busy, no stale copy", key)
        return None

    def _lookup(self, key: str, options: FetchOptions) -> Lookup:
        return classify(self._store.read(key), cache_nil=options.cache_nil)

    def _lookup_or_miss(self, key: str, options: FetchOptions) -> Lookup:
        """Lookup for the wait and stale paths, where a read error is a miss."""
        try:
            return self._lookup(key, options)
        except Exception:
            logger.warning("Failed to read %s, treating as miss", key, exc_info=True)
            return Miss()

    def _compute_and_store(
        self,
        key: str,
        ttl: float,
        producer: Callable[[], T],
        lock_key: str,
        token: str,
        options: FetchOptions,
    ) -> T:
        """Run the producer and store its result. Must hold the lock."""
        try:
            value = producer()
            stored = NULL_VALUE if options.cache_nil and value is None else value
            self._store.write(key, stored, ttl)
            if options.stale_ttl is not None:
                self._store.write(
                    stale_key_for(key), stored, ttl + options.stale_ttl
                )
            return value
        finally:
            if not self._lock_client.release(lock_key, token):
                logger.debug("Lock %s was not released by this caller", lock_key)


def fetch(
    key: str,
    ttl: Duration,
    producer: Callable[[], T],
    *,
    store: CacheStore | None = None,
    lock_client: LockClient | None = None,
    lock_ttl: Duration | None = None,
    wait_timeout: Duration | None = None,
    wait_sleep: Duration | None = None,
    stale_ttl: Duration | None = None,
    cache_nil: bool | None = None,
) -> T | None:
    """Coalesced fetch using process-wide defaults for anything not passed.

    The store falls back to :func:`cache_coalescer.configure` (or
    ``CACHE_COALESCER_REDIS_URL``); :class:`ConfigurationError` is raised
    when none is available. The lock falls back to the configured lock, then
    the store's own lock, then an in-process lock shared by all callers.
    """
    check_producer(producer)
    store = store if store is not None else config.default_store()
    lock_client = lock_client or config.default_lock_client()
    if lock_client is None:
        lock_client = default_lock_for(store, config.shared_memory_lock)
    coalescer = Coalescer(
        store,
        lock_client=lock_client,
        options=config.current_settings().fetch_options(),
    )
    return coalescer.fetch(
        key,
        ttl,
        producer,
        lock_ttl=lock_ttl,
        wait_timeout=wait_timeout,
        wait_sleep=wait_sleep,
        stale_ttl=stale_ttl,
        cache_nil=cache_nil,
    )
