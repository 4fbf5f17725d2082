"""Tests for lookup classification."""

from cache_coalescer import (
    NULL_VALUE,
    Hit,
    Miss,
    NullHit,
    NullValue,
    lock_key_for,
    stale_key_for,
)
from cache_coalescer.types import classify, unwrap


class TestClassify:
    """Tests for classify and unwrap."""

    def test_value_is_hit(self) -> None:
        """Test that a stored value is a hit."""
        assert classify("value", cache_nil=False) == Hit("value")
        assert classify(0, cache_nil=False) == Hit(0)
        assert classify("", cache_nil=True) == Hit("")

    def test_none_is_miss(self) -> None:
        """Test that absence is a miss."""
        assert classify(None, cache_nil=True) == Miss()

    def test_null_marker_depends_on_cache_nil(self) -> None:
        """Test that the null marker is only honoured when caching None."""
        assert classify(NULL_VALUE, cache_nil=True) == NullHit()
        assert classify(NULL_VALUE, cache_nil=False) == Miss()

    def test_null_marker_matched_by_type(self) -> None:
        """Test that any NullValue instance counts, not just the singleton."""
        assert classify(NullValue(), cache_nil=True) == NullHit()

    def test_unwrap(self) -> None:
        """Test extracting the caller-facing value."""
        assert unwrap(Hit([1])) == [1]
        assert unwrap(NullHit()) is None
        assert unwrap(Miss()) is None


def test_derived_keys_are_namespaced() -> None:
    """Test the lock and stale key layout."""
    assert lock_key_for("user:1") == "cache-coalescer:lock:user:1"
    assert stale_key_for("user:1") == "cache-coalescer:stale:user:1"
