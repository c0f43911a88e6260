"""Tests for the TTL cache."""

from arbwatch.utils.cache import TTLCache
from tests.conftest import FakeClock


class TestTTLCache:

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("k", 1)
        clock.advance(9)
        assert cache.get("k") == 1

    def test_miss_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("k", 1)
        clock.advance(10)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_call_max_age(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v")
        clock.advance(5)
        assert cache.get("k", max_age_seconds=3) is None

    def test_cleanup_expired(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.advance(8)
        cache.set("new", 2)
        clock.advance(3)
        assert cache.cleanup_expired() == 1
        assert cache.get("new") == 2

    def test_delete_and_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0
