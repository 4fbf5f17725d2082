"""Shared pytest fixtures."""

import threading
import time
from typing import Any

import pytest

from cache_coalescer import InMemoryLock, config


class MemoryStore:
    """Dict-backed store that records reads and writes."""

    def __init__(self) -> None:
        self.data: dict[str, tuple[Any, float]] = {}
        self.reads: list[str] = []
        self.writes: list[tuple[str, Any, float]] = []
        self._lock = threading.Lock()

    def read(self, key: str) -> Any | None:
        with self._lock:
            self.reads.append(key)
            entry = self.data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self.data[key]
                return None
            return value

    def write(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self.writes.append((key, value, ttl))
            self.data[key] = (value, time.monotonic() + ttl)


class AsyncMemoryStore:
    """Async face of MemoryStore."""

    def __init__(self) -> None:
        self.sync = MemoryStore()

    async def read(self, key: str) -> Any | None:
        return self.sync.read(key)

    async def write(self, key: str, value: Any, ttl: float) -> None:
        self.sync.write(key, value, ttl)


class CountingLock:
    """Wraps a lock and records every call."""

    def __init__(self, inner: Any = None) -> None:
        self.inner = inner or InMemoryLock()
        self.acquires: list[tuple[str, str, float]] = []
        self.releases: list[tuple[str, str]] = []

    def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        self.acquires.append((lock_key, token, ttl))
        return self.inner.acquire(lock_key, token, ttl)

    def release(self, lock_key: str, token: str) -> bool:
        self.releases.append((lock_key, token))
        return self.inner.release(lock_key, token)


class RefusingLock:
    """A lock that is always held by someone else."""

    def __init__(self) -> None:
        self.acquires = 0

    def acquire(self, lock_key: str, token: str, ttl: float) -> bool:
        self.acquires += 1
        return False

    def release(self, lock_key: str, token: str) -> bool:
        return False


@pytest.fixture(autouse=True)
def _reset_defaults(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from process-wide defaults and the environment."""
    for name in (
        "LOCK_TTL",
        "WAIT_TIMEOUT",
        "WAIT_SLEEP",
        "STALE_TTL",
        "CACHE_NIL",
        "REDIS_URL",
    ):
        monkeypatch.delenv(f"CACHE_COALESCER_{name}", raising=False)
    config.reset()
    yield
    config.reset()


@pytest.fixture
def store() -> MemoryStore:
    """Create a fresh MemoryStore for each test."""
    return MemoryStore()


@pytest.fixture
def async_store() -> AsyncMemoryStore:
    """Create a fresh AsyncMemoryStore for each test."""
    return AsyncMemoryStore()


@pytest.fixture
def lock() -> InMemoryLock:
    """Create a fresh InMemoryLock for each test."""
    return InMemoryLock()


@pytest.fixture
def counting_lock() -> CountingLock:
    """Create an InMemoryLock wrapper that records calls."""
    return CountingLock()


@pytest.fixture
def refusing_lock() -> RefusingLock:
    """Create a lock that never grants ownership."""
    return RefusingLock()
