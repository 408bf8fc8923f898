"""Unit tests for the TTL caches and the expiry sweeper."""

import threading
import time

import pytest

from app.services.cache_service import (
    CacheService,
    TTLCache,
    catalog_cache_key,
    score_cache_key
)
from app.services.cache_sweeper import CacheSweeper


class TestCacheKeys:
    """Tests for cache key builders."""

    def test_score_key_ignores_condition_order(self):
        """Should build one key for every ordering of the same set."""
        assert score_cache_key(42, ["oily", "acne"]) == score_cache_key(42, ["acne", "oily"])
        assert score_cache_key(42, ["oily", "acne", "oily"]) == '[42,["acne","oily"]]'

    def test_score_key_differs_by_product_and_set(self):
        """Should separate products and condition sets."""
        assert score_cache_key(1, ["acne"]) != score_cache_key(2, ["acne"])
        assert score_cache_key(1, ["acne"]) != score_cache_key(1, ["acne", "oily"])

    def test_score_key_keeps_ids_and_conditions_apart(self):
        """Should not let the id text run into the condition list."""
        assert score_cache_key(1, ["acne"]) != score_cache_key("1", ["acne"])
        assert score_cache_key("5_acne", ["oily"]) != score_cache_key(5, ["acne", "oily"])
        assert score_cache_key(5, ["acne,oily"]) != score_cache_key(5, ["acne", "oily"])

    def test_catalog_key(self):
        """Should depend on the budget tier only."""
        assert catalog_cache_key("mid") == "products_budget_mid"


class TestTTLCache:
    """Tests for TTLCache."""

    @pytest.fixture
    def cache(self, clock):
        return TTLCache("test", ttl=300, clock=clock)

    def test_live_until_ttl(self, cache, clock):
        """Should serve an entry strictly younger than the TTL and nothing after."""
        cache.set("k", "v")
        clock.advance(299.999)
        assert cache.get("k") == "v"
        clock.advance(0.001)
        assert cache.get("k") is None

    def test_counts_hits_and_misses(self, cache):
        """Should count live reads as hits and everything else as misses."""
        cache.get("k")
        cache.set("k", 1)
        cache.get("k")
        assert (cache.hits, cache.misses) == (1, 1)

    def test_contains_does_not_count(self, cache, clock):
        """Should report liveness without touching counters."""
        cache.set("k", 1)
        assert cache.contains("k")
        clock.advance(300)
        assert not cache.contains("k")
        assert (cache.hits, cache.misses) == (0, 0)

    def test_delete_and_clear(self, cache):
        """Should remove entries."""
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert len(cache) == 0

    def test_sweep_removes_only_expired(self, cache, clock):
        """Should remove entries whose age reached the TTL."""
        cache.set("old", 1)
        clock.advance(200)
        cache.set("new", 2)
        clock.advance(100)
        assert cache.sweep() == 1
        assert cache.keys() == ["new"]

    def test_expired_entry_absent_before_sweep(self, cache, clock):
        """Should treat an expired entry as absent even if still stored."""
        cache.set("k", 1)
        clock.advance(301)
        assert cache.get("k") is None
        assert cache.keys() == ["k"]

    def test_stats(self, cache):
        """Should report size, keys and TTL."""
        cache.set("k", 1)
        stats = cache.stats()
        assert stats["size"] == 1
        assert stats["keys"] == ["k"]
        assert stats["ttl_seconds"] == 300


class TestGetOrLoad:
    """Tests for read-through loading."""

    @pytest.fixture
    def cache(self, clock):
        return TTLCache("test", ttl=600, clock=clock)

    def test_loads_once_while_live(self, cache, clock):
        """Should call the loader on a miss only."""
        calls = []

        def loader():
            calls.append(1)
            return ("p1", "p2")

        first = cache.get_or_load("k", loader)
        clock.advance(599)
        second = cache.get_or_load("k", loader)

        assert len(calls) == 1
        assert first is second

    def test_reloads_after_expiry(self, cache, clock):
        """Should call the loader again once the entry expired."""
        calls = []

        def loader():
            calls.append(1)
            return len(calls)

        cache.get_or_load("k", loader)
        clock.advance(600)
        assert cache.get_or_load("k", loader) == 2

    def test_error_leaves_previous_entry(self, cache, clock):
        """Should store nothing when the loader raises."""
        cache.set("k", "old")
        clock.advance(600)

        def failing():
            raise RuntimeError("store down")

        with pytest.raises(RuntimeError):
            cache.get_or_load("k", failing)

        assert cache.keys() == ["k"]
        assert cache.get_or_load("k", lambda: "new") == "new"

    def test_concurrent_misses_load_once(self, cache):
        """Should coalesce concurrent misses for one key into one load."""
        calls = []
        entered = threading.Event()
        release = threading.Event()

        def loader():
            calls.append(1)
            entered.set()
            release.wait(5)
            return "catalog"

        results = []
        leader = threading.Thread(target=lambda: results.append(cache.get_or_load("k", loader)))
        leader.start()
        assert entered.wait(5)

        followers = [
            threading.Thread(target=lambda: results.append(cache.get_or_load("k", loader)))
            for _ in range(4)
        ]
        for thread in followers:
            thread.start()
        time.sleep(0.05)
        release.set()
        for thread in [leader, *followers]:
            thread.join(5)

        assert len(calls) == 1
        assert results == ["catalog"] * 5


class TestCacheService:
    """Tests for CacheService."""

    def test_independent_ttls(self, clock):
        """Should expire scores and catalog entries on their own TTLs."""
        service = CacheService(score_ttl=300, catalog_ttl=600, clock=clock)
        service.scores.set("1_acne", 50)
        service.catalog.set("products_budget_mid", ())
        clock.advance(300)

        assert service.scores.get("1_acne") is None
        assert service.catalog.get("products_budget_mid") == ()

    def test_sweep_all(self, clock):
        """Should sweep every cache and report the total removed."""
        service = CacheService(score_ttl=300, catalog_ttl=600, clock=clock)
        service.scores.set("a", 1)
        service.catalog.set("b", ())
        service.categories.set("c", ())
        clock.advance(600)
        assert service.sweep() == 3

    def test_stats(self, cache_service):
        """Should report each cache by name."""
        cache_service.scores.set("1_acne", 23)
        stats = cache_service.stats()
        assert set(stats) == {"scores", "catalog", "categories"}
        assert stats["scores"]["keys"] == ["1_acne"]


class TestCacheSweeper:
    """Tests for CacheSweeper."""

    def test_run_once(self, cache_service, clock):
        """Should sweep expired entries and count the run."""
        sweeper = CacheSweeper(cache_service, interval=600)
        cache_service.scores.set("1_acne", 23)
        clock.advance(300)

        assert sweeper.run_once() == 1
        assert sweeper.runs == 1

    def test_start_and_stop(self, cache_service):
        """Should run a daemon thread until stopped."""
        sweeper = CacheSweeper(cache_service, interval=0.01)
        sweeper.start()
        assert sweeper.running
        sweeper.stop()
        assert not sweeper.running
