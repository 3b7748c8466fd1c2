"""Tests for the lookup cache."""

from diet_tracker.services.cache import InMemoryCache
from tests.conftest import FrozenClock


def test_entries_expire_after_ttl() -> None:
    clock = FrozenClock()
    cache = InMemoryCache(clock=clock)
    cache.set("fdc:food:1", "chicken", ttl_seconds=10)

    clock.advance(9)
    assert cache.get("fdc:food:1") == "chicken"
    clock.advance(1)
    assert cache.get("fdc:food:1") is None


def test_oldest_entry_is_evicted() -> None:
    cache = InMemoryCache(max_entries=2, clock=FrozenClock())
    cache.set("a", 1, ttl_seconds=60)
    cache.set("b", 2, ttl_seconds=60)
    cache.set("a", 3, ttl_seconds=60)
    cache.set("c", 4, ttl_seconds=60)

    assert cache.get("b") is None
    assert cache.get("a") == 3
    assert cache.get("c") == 4
