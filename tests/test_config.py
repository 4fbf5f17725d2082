"""Tests for settings and process-wide defaults."""

from typing import Any

import pytest
from pydantic import ValidationError

from cache_coalescer import (
    CoalescerSettings,
    ConfigurationError,
    FetchOptions,
    config,
    configure,
    default_store,
    fetch,
    get_settings,
    lock_key_for,
)


class TestSettings:
    """Tests for CoalescerSettings."""

    def test_defaults(self) -> None:
        """Test the built-in defaults."""
        settings = CoalescerSettings()

        assert settings.fetch_options() == FetchOptions()
        assert settings.redis_url is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test CACHE_COALESCER_* variables, durations included."""
        monkeypatch.setenv("CACHE_COALESCER_LOCK_TTL", "30s")
        monkeypatch.setenv("CACHE_COALESCER_WAIT_TIMEOUT", "1.5")
        monkeypatch.setenv("CACHE_COALESCER_WAIT_SLEEP", "10ms")
        monkeypatch.setenv("CACHE_COALESCER_STALE_TTL", "1h")
        monkeypatch.setenv("CACHE_COALESCER_CACHE_NIL", "true")

        options = get_settings().fetch_options()

        assert options.lock_ttl == 30
        assert options.wait_timeout == 1.5
        assert options.wait_sleep == pytest.approx(0.01)
        assert options.stale_ttl == 3600
        assert options.cache_nil is True

    def test_rejects_bad_values(self) -> None:
        """Test that invalid settings fail validation."""
        with pytest.raises(ValidationError):
            CoalescerSettings(lock_ttl=0)
        with pytest.raises(ValidationError):
            CoalescerSettings(wait_timeout="soon")

    def test_get_settings_is_cached(self) -> None:
        """Test that settings are read once until reset."""
        assert get_settings() is get_settings()


class TestDefaults:
    """Tests for configure / default_store / module-level fetch."""

    def test_no_store_is_a_configuration_error(self) -> None:
        """Test failing loudly when no store can be resolved."""
        with pytest.raises(ConfigurationError, match="store is required"):
            default_store()
        with pytest.raises(ConfigurationError):
            fetch("key", 1, lambda: "value")

    def test_missing_producer_checked_first(self) -> None:
        """Test that a missing producer is reported before the store."""
        with pytest.raises(TypeError, match="producer"):
            fetch("key", 1, None)  # type: ignore[arg-type]

    def test_configured_store_is_used(self, store: Any) -> None:
        """Test that fetch falls back to the configured store."""
        configure(store=store)

        assert default_store() is store
        assert fetch("key", 60, lambda: "value") == "value"
        assert store.read("key") == "value"

    def test_explicit_store_wins(self, store: Any) -> None:
        """Test that an explicit store overrides the configured one."""
        other = type(store)()
        configure(store=other)

        fetch("key", 60, lambda: "value", store=store)

        assert store.read("key") == "value"
        assert other.writes == []

    def test_configured_lock_client_is_used(
        self, store: Any, counting_lock: Any
    ) -> None:
        """Test that fetch falls back to the configured lock."""
        configure(store=store, lock_client=counting_lock)

        fetch("key", 60, lambda: "value")

        assert counting_lock.acquires[0][0] == lock_key_for("key")

    def test_configured_settings_are_used(
        self, store: Any, counting_lock: Any
    ) -> None:
        """Test that configured settings provide the default options."""
        configure(settings=CoalescerSettings(lock_ttl=9, stale_ttl=1))

        fetch("key", 60, lambda: "value", store=store, lock_client=counting_lock)

        assert counting_lock.acquires[0][2] == 9
        assert len(store.writes) == 2

    def test_plain_stores_share_one_in_memory_lock(self, store: Any) -> None:
        """Test that callers in one process coordinate through one table."""
        config.shared_memory_lock.acquire(lock_key_for("shared"), "token", 60)
        try:
            result = fetch(
                "shared", 60, lambda: "value", store=store, wait_timeout=0
            )
        finally:
            config.shared_memory_lock.release(lock_key_for("shared"), "token")

        assert result is None

    def test_redis_url_builds_default_store(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test lazily building a RedisStore from CACHE_COALESCER_REDIS_URL."""
        pytest.importorskip("redis")
        from cache_coalescer import RedisStore

        monkeypatch.setenv("CACHE_COALESCER_REDIS_URL", "redis://localhost:6379/0")

        store = default_store()

        assert isinstance(store, RedisStore)
        assert default_store() is store
