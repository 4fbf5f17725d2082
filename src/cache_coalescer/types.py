"""Core types for cache_coalescer."""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cache_coalescer.keys import (
    DEFAULT_LOCK_TTL,
    DEFAULT_WAIT_SLEEP,
    DEFAULT_WAIT_TIMEOUT,
)

T = TypeVar("T")

# "30s", "500ms", "2m" or a number of seconds
Duration = str | int | float


@dataclass(frozen=True, slots=True)
class NullValue:
    """Stored in place of ``None`` when a producer result of ``None`` is cached."""


NULL_VALUE = NullValue()


@dataclass(frozen=True, slots=True)
class Hit(Generic[T]):
    """A cached value was found."""

    value: T


@dataclass(frozen=True, slots=True)
class NullHit:
    """A cached ``None`` was found."""


@dataclass(frozen=True, slots=True)
class Miss:
    """Nothing usable is cached."""


Lookup = Hit[Any] | NullHit | Miss


def classify(raw: Any, *, cache_nil: bool) -> Lookup:
    """Turn a raw store read into a lookup result.

    A stored null marker only counts as a hit when the caller opted into
    caching ``None``.
    """
    if isinstance(raw, NullValue):
        return NullHit() if cache_nil else Miss()
    if raw is None:
        return Miss()
    return Hit(raw)


@dataclass(frozen=True, slots=True)
class FetchOptions:
    """Tuning for a coalesced fetch. Times are in seconds."""

    lock_ttl: float = DEFAULT_LOCK_TTL
    wait_timeout: float = DEFAULT_WAIT_TIMEOUT
    wait_sleep: float = DEFAULT_WAIT_SLEEP
    stale_ttl: float | None = None
    cache_nil: bool = False

    def __post_init__(self) -> None:
        if self.lock_ttl <= 0:
            raise ValueError("lock_ttl must be positive")
        if self.wait_timeout < 0:
            raise ValueError("wait_timeout must not be negative")
        if self.wait_sleep < 0:
            raise ValueError("wait_sleep must not be negative")
        if self.stale_ttl is not None and self.stale_ttl < 0:
            raise ValueError("stale_ttl must not be negative")


def unwrap(found: Lookup) -> Any:
    """Value of a hit, ``None`` for a cached null or a miss."""
    return found.value if isinstance(found, Hit) else None
