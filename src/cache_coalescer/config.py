"""Settings and process-wide defaults.

Only the module-level :func:`cache_coalescer.fetch` reads from here. The
:class:`~cache_coalescer.coalescer.Coalescer` itself is always handed its
store and lock.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cache_coalescer.duration import parse_duration
from cache_coalescer.errors import ConfigurationError
from cache_coalescer.keys import (
    DEFAULT_LOCK_TTL,
    DEFAULT_WAIT_SLEEP,
    DEFAULT_WAIT_TIMEOUT,
)
from cache_coalescer.locks import AsyncInMemoryLock, InMemoryLock, LockClient
from cache_coalescer.stores.base import CacheStore
from cache_coalescer.types import FetchOptions

logger = logging.getLogger(__name__)


class CoalescerSettings(BaseSettings):
    """Defaults for coalesced fetches, read from ``CACHE_COALESCER_*``."""

    model_config = SettingsConfigDict(env_prefix="CACHE_COALESCER_", extra="ignore")

    lock_ttl: float = Field(default=DEFAULT_LOCK_TTL, gt=0)
    wait_timeout: float = Field(default=DEFAULT_WAIT_TIMEOUT, ge=0)
    wait_sleep: float = Field(default=DEFAULT_WAIT_SLEEP, ge=0)
    stale_ttl: float | None = Field(default=None, ge=0)
    cache_nil: bool = False
    redis_url: str | None = Field(
        default=None,
        description="Build a default RedisStore from this URL if no store is set.",
    )

    @field_validator(
        "lock_ttl", "wait_timeout", "wait_sleep", "stale_ttl", mode="before"
    )
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        """Accept "500ms" / "5s" style strings as well as plain seconds."""
        if value is None or not isinstance(value, str):
            return value
        if value == "":
            return None
        try:
            return float(value)
        except ValueError:
            return parse_duration(value)

    def fetch_options(self) -> FetchOptions:
        """Default options for coalesced fetches."""
        return FetchOptions(
            lock_ttl=self.lock_ttl,
            wait_timeout=self.wait_timeout,
            wait_sleep=self.wait_sleep,
            stale_ttl=self.stale_ttl,
            cache_nil=self.cache_nil,
        )


@lru_cache(maxsize=1)
def get_settings() -> CoalescerSettings:
    """Return the process-wide settings (read once)."""
    return CoalescerSettings()


_lock = threading.Lock()
_store: CacheStore | None = None
_lock_client: LockClient | None = None
_settings: CoalescerSettings | None = None

# Shared by every fetch that falls back to an in-process lock, so callers in
# one process coordinate through the same table.
shared_memory_lock = InMemoryLock()
shared_async_memory_lock = AsyncInMemoryLock()


def configure(
    *,
    store: CacheStore | None = None,
    lock_client: LockClient | None = None,
    settings: CoalescerSettings | None = None,
) -> None:
    """Set the process-wide defaults used by :func:`cache_coalescer.fetch`."""
    global _store, _lock_client, _settings
    with _lock:
        if store is not None:
            _store = store
        if lock_client is not None:
            _lock_client = lock_client
        if settings is not None:
            _settings = settings


def reset() -> None:
    """Forget configured defaults."""
    global _store, _lock_client, _settings
    with _lock:
        _store = None
        _lock_client = None
        _settings = None
    get_settings.cache_clear()


def current_settings() -> CoalescerSettings:
    """Configured settings, falling back to the environment."""
    return _settings if _settings is not None else get_settings()


def default_lock_client() -> LockClient | None:
    """The configured lock client, if any."""
    return _lock_client


def default_store() -> CacheStore:
    """Resolve the default store or fail.

    Uses the configured store if there is one, otherwise builds a
    ``RedisStore`` from ``redis_url``.
    """
    global _store
    with _lock:
        if _store is not None:
            return _store
        url = current_settings().redis_url
        if url is None:
            raise ConfigurationError(
                "store is required: pass store=... or call configure(store=...)"
            )
        from cache_coalescer.stores.redis import RedisStore

        logger.info("Using default RedisStore from configured redis_url")
        _store = RedisStore.from_url(url)
        return _store
