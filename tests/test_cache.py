"""Tests for the TTL response cache."""

import pytest

from moovey.cache import TTLCache


class TestExpiry:
    def test_fresh_entry_is_returned(self, cache, clock):
        cache.set("priority-tasks", [1, 2])
        clock.advance(299999)
        assert cache.get("priority-tasks") == [1, 2]

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set("priority-tasks", [1, 2], ttl=300000)
        clock.advance(300001)
        assert cache.get("priority-tasks") is None

    def test_entry_expires_exactly_at_ttl(self, cache, clock):
        cache.set("k", "v", ttl=1000)
        clock.advance(1000)
        assert cache.get("k") is None

    def test_expired_read_drops_entry(self, cache, clock):
        cache.set("k", "v", ttl=10)
        clock.advance(20)
        cache.get("k")
        assert len(cache) == 0

    def test_has(self, cache, clock):
        cache.set("k", "v", ttl=10)
        assert cache.has("k") is True
        clock.advance(10)
        assert cache.has("k") is False

    def test_missing_key(self, cache):
        assert cache.get("nope") is None

    def test_overwrite_restamps(self, cache, clock):
        cache.set("k", "old", ttl=100)
        clock.advance(90)
        cache.set("k", "new", ttl=100)
        clock.advance(50)
        assert cache.get("k") == "new"


class TestInvalidation:
    def test_invalidate(self, cache):
        cache.set("a", 1)
        cache.invalidate("a")
        cache.invalidate("never-set")
        assert cache.get("a") is None

    def test_invalidate_pattern(self, cache):
        cache.set("tasks:page:1", 1)
        cache.set("tasks:page:2", 2)
        cache.set("priority-tasks", 3)
        assert cache.invalidate_pattern(r"^tasks:") == 2
        assert cache.get("priority-tasks") == 3

    def test_clear_and_dispose(self, cache):
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0
        cache.set("b", 2)
        cache.dispose()
        assert cache.get("b") is None


class TestSweep:
    def test_sweep_removes_only_expired(self, cache, clock):
        cache.set("short", 1, ttl=10)
        cache.set("long", 2, ttl=1000)
        clock.advance(50)
        assert cache.sweep() == 1
        assert cache.get("long") == 2

    def test_sweep_trims_oldest_below_low_watermark(self, clock):
        cache = TTLCache(default_ttl_ms=10**9, max_entries=50, low_watermark=40, sweep_interval_ms=10**9, clock=clock)
        for i in range(50):
            cache.set(f"k{i}", i)
            clock.advance(1)
        assert len(cache) == 50

        cache.set("k50", 50)  # 51st entry pushes over the ceiling
        assert len(cache) == 39
        # The oldest went first
        assert cache.get("k0") is None
        assert cache.get("k11") is None
        assert cache.get("k12") == 12
        assert cache.get("k50") == 50

    def test_set_sweeps_after_interval(self, clock):
        cache = TTLCache(default_ttl_ms=100, sweep_interval_ms=100, clock=clock)
        cache.set("a", 1)
        clock.advance(150)
        cache.set("b", 2)
        assert len(cache) == 1

    def test_low_watermark_above_ceiling_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(max_entries=10, low_watermark=20)
