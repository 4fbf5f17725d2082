"""In-process lock backends.

Ownership is not checked on release: any holder of the lock object can drop
any key. Within one process tokens cannot be forged the way they can across
a network, so this is a weaker guarantee than the Redis lock gives.
"""

import threading
import time
from collections.abc import Callable


class InMemoryLock:
    """Thread-safe lock table with per-key TTL expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._locks: dict[str, float] = {}
        self._clock = clock
        self._mutex = threading.Lock()

    def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Take the lock unless an unexpired entry exists."""
        _ = token  # Ownership is not tracked in-process
        now = self._clock()
        with self._mutex:
            expires_at = self._locks.get(lock_key)
            if expires_at is not None and expires_at > now:
                return False
            self._locks[lock_key] = now + ttl
            return True

    def release(self, lock_key: str, token: str) -> bool:
        """Remove the entry regardless of token."""
        _ = token
        with self._mutex:
            self._locks.pop(lock_key, None)
        return True

    def held(self, lock_key: str) -> bool:
        """Check whether an unexpired entry exists for ``lock_key``."""
        now = self._clock()
        with self._mutex:
            expires_at = self._locks.get(lock_key)
            return expires_at is not None and expires_at > now


class AsyncInMemoryLock:
    """Async face of :class:`InMemoryLock`.

    The table is guarded by a thread lock held only for a dict update, so the
    same instance can be shared across event loops and threads.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = InMemoryLock(clock)

    async def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        """Take the lock unless an unexpired entry exists."""
        return self._lock.acquire(lock_key, token, ttl)

    async def release(self, lock_key: str, token: str) -> bool:
        """Remove the entry regardless of token."""
        return self._lock.release(lock_key, token)

    def held(self, lock_key: str) -> bool:
        """Check whether an unexpired entry exists for ``lock_key``."""
        return self._lock.held(lock_key)
