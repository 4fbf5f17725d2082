"""Cache store protocols.

The coalescer does not store anything itself. It needs a store that can read
a key (``None`` when absent) and write a key with an expiry in seconds.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Sync cache store interface."""

    def read(self, key: str) -> Any | None:
        """Get the value for key, or None if absent."""
        ...

    def write(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key for ttl seconds."""
        ...


@runtime_checkable
class AsyncCacheStore(Protocol):
    """Async cache store interface."""

    async def read(self, key: str) -> Any | None:
        """Get the value for key, or None if absent."""
        ...

    async def write(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key for ttl seconds."""
        ...
