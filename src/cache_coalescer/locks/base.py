"""Lock client protocols."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LockClient(Protocol):
    """Sync lock interface."""

    def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Take the lock for ``ttl`` seconds. True iff this call now owns it."""
        ...

    def release(self, lock_key: str, token: str) -> bool:
        """Drop the lock if held by ``token``. Never raises on backend errors."""
        ...


@runtime_checkable
class AsyncLockClient(Protocol):
    """Async lock interface."""

    async def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Take the lock for ``ttl`` seconds. True iff this call now owns it."""
        ...

    async def release(self, lock_key: str, token: str) -> bool:
        """Drop the lock if held by ``token``. Never raises on backend errors."""
        ...


@runtime_checkable
class LockProvider(Protocol):
    """Capability of a store that can hand out a lock on its own backend."""

    def lock_client(self) -> LockClient:
        """Return a lock sharing this store's connection."""
        ...


@runtime_checkable
class AsyncLockProvider(Protocol):
    """Capability of an async store that can hand out a lock on its own backend."""

    def lock_client(self) -> AsyncLockClient:
        """Return a lock sharing this store's connection."""
        ...


@runtime_checkable
class RedisBacked(Protocol):
    """A store that exposes the Redis client (or pool) it talks to."""

    @property
    def redis(self) -> Any:
        """The underlying ``redis.Redis`` / ``redis.ConnectionPool``."""
        ...
