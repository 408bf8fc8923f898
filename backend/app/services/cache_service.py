"""
In-memory TTL caches for catalog data and match scores.

Three independent caches are owned by one CacheService instance that is
constructed at startup and passed to the services that need it:

- score cache: keyed by product id + sorted condition set (5 min default)
- catalog cache: keyed by budget tier only, so every user on the same tier
  shares one store fetch whatever conditions they selected (10 min default)
- category cache: the store's category list (10 min default)

Every read checks the entry age itself; an expired entry is treated as
absent even if the sweeper has not removed it yet.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

# Configure logging
logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was stored."""
    value: T
    stored_at: float


class _Flight:
    """A load in progress for one key; followers wait on the event."""

    def __init__(self):
        self.event = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None


class TTLCache(Generic[T]):
    """
    Lock-protected dictionary whose entries expire after a fixed TTL.

    Attributes:
        name: Cache name used in logs and stats
        ttl: Entry time-to-live in seconds
        hits: Number of live reads
        misses: Number of reads that found nothing live
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._inflight: Dict[str, _Flight] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _is_live(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.stored_at < self.ttl

    def get(self, key: str) -> Optional[T]:
        """
        Return the live value stored under key, or None.

        Args:
            key: Cache key

        Returns:
            The cached value if present and younger than the TTL, else None
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_live(entry, now):
                self.hits += 1
                return entry.value
            self.misses += 1
            return None

    def contains(self, key: str) -> bool:
        """True if a live entry exists for key. Does not touch hit counters."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._is_live(entry, now)

    def set(self, key: str, value: T) -> None:
        """Store value under key, stamped with the current clock reading."""
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        """Remove key; returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_load(self, key: str, loader: Callable[[], T]) -> T:
        """
        Read-through lookup with per-key load coalescing.

        On a miss the first caller runs the loader and stores its result;
        callers arriving for the same key while that load is running wait
        for it and share its result (or its exception). Nothing is stored
        when the loader raises, so any previous entry stays as it was.

        Args:
            key: Cache key
            loader: Zero-argument callable producing the value

        Returns:
            The cached or freshly loaded value

        Raises:
            Whatever the loader raised
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_live(entry, now):
                self.hits += 1
                return entry.value
            self.misses += 1
            flight = self._inflight.get(key)
            leader = flight is None
            if leader:
                flight = _Flight()
                self._inflight[key] = flight

        if not leader:
            logger.debug(f"[{self.name}] waiting for in-flight load of '{key}'")
            flight.event.wait()
            if flight.error is not None:
                raise flight.error
            return flight.value

        try:
            value = loader()
            self.set(key, value)
            flight.value = value
            return value
        except BaseException as exc:
            flight.error = exc
            raise
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            flight.event.set()

    def sweep(self) -> int:
        """
        Remove every entry whose age has reached the TTL.

        Returns:
            int: Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if not self._is_live(entry, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def keys(self) -> List[str]:
        """Keys physically present, live or not."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Size, keys, TTL and hit counters for monitoring."""
        with self._lock:
            return {
                "size": len(self._entries),
                "keys": list(self._entries),
                "ttl_seconds": self.ttl,
                "hits": self.hits,
                "misses": self.misses,
            }


def score_cache_key(product_id: Any, conditions: Iterable[str]) -> str:
    """
    Build the score cache key for a product and a condition set.

    Conditions are deduplicated and sorted, so sets with the same members
    always give the same key whatever order they were built in. The key is
    JSON encoded, which keeps the id type (42 vs "42") and the condition
    boundaries apart.

    Example:
        >>> score_cache_key(42, ["oily", "acne", "oily"])
        '[42,["acne","oily"]]'
    """
    return json.dumps([product_id, sorted(set(conditions))], separators=(",", ":"))


def catalog_cache_key(budget_tier: str) -> str:
    """Catalog cache key; depends on the budget tier only."""
    return f"products_budget_{budget_tier}"


CATEGORY_CACHE_KEY = "all_categories"


class CacheService:
    """
    Owner of the score, catalog and category caches.

    Attributes:
        scores: Match score cache
        catalog: Product catalog cache (budget-partitioned)
        categories: Store category cache
    """

    def __init__(
        self,
        score_ttl: float = 300,
        catalog_ttl: float = 600,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the three caches.

        Args:
            score_ttl: Score cache TTL in seconds (default: 5 minutes)
            catalog_ttl: Catalog and category cache TTL in seconds (default: 10 minutes)
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self.scores: TTLCache[int] = TTLCache("scores", score_ttl, clock)
        self.catalog: TTLCache[tuple] = TTLCache("catalog", catalog_ttl, clock)
        self.categories: TTLCache[tuple] = TTLCache("categories", catalog_ttl, clock)

        logger.info(
            f"CacheService initialized with score_ttl={score_ttl}s, "
            f"catalog_ttl={catalog_ttl}s"
        )

    @property
    def caches(self) -> List[TTLCache]:
        return [self.scores, self.catalog, self.categories]

    def sweep(self) -> int:
        """
        Evict expired entries from all caches.

        Returns:
            int: Total number of entries removed
        """
        cleaned = 0
        for cache in self.caches:
            removed = cache.sweep()
            if removed:
                logger.debug(f"Swept {removed} expired entries from '{cache.name}' cache")
            cleaned += removed

        if cleaned > 0:
            logger.info(f"Cleaned {cleaned} expired cache entries")
        return cleaned

    def clear(self) -> None:
        for cache in self.caches:
            cache.clear()

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Per-cache size and key enumeration for operational monitoring."""
        return {cache.name: cache.stats() for cache in self.caches}
