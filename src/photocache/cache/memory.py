"""L1 in-memory LRU cache."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from photocache.cache.stats import MemoryCacheEntry, MemoryCacheStats, image_cost

logger = logging.getLogger(__name__)

_DEFAULT_COUNT_LIMIT = 50
_DEFAULT_COST_LIMIT_BYTES = 100 * 1024 * 1024
_STATS_LRU_PREVIEW = 5


class MemoryImageCache:
    """Thread-safe LRU cache with count- and cost-based eviction.

    Every operation takes the same lock and never blocks on I/O, so it is
    safe to call from the event loop and from worker threads alike.
    """

    def __init__(
        self,
        count_limit: int = _DEFAULT_COUNT_LIMIT,
        cost_limit_bytes: int = _DEFAULT_COST_LIMIT_BYTES,
        cost_fn: Callable[[Any], int] = image_cost,
        name: str = "images",
    ) -> None:
        self._store: OrderedDict[str, MemoryCacheEntry] = OrderedDict()
        self._count_limit = count_limit
        self._cost_limit_bytes = cost_limit_bytes
        self._cost_fn = cost_fn
        self._name = name
        self._total_cost = 0
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            # Move to end (most recently used)
            self._store.move_to_end(key)
            self._hits += 1
            return entry.value

    def put(self, key: str, value: Any) -> None:
        cost = self._cost_fn(value)
        with self._lock:
            self._remove(key)
            self._store[key] = MemoryCacheEntry(key=key, value=value, cost=cost)
            self._total_cost += cost
            if cost > self._cost_limit_bytes:
                # Oversized: only the count limit applies, then it is the next victim
                while len(self._store) > self._count_limit and len(self._store) > 1:
                    self._evict_oldest()
                self._store.move_to_end(key, last=False)
            else:
                # The new entry sits at the MRU end and is never evicted by its own put
                while self._over_budget() and len(self._store) > 1:
                    self._evict_oldest()
        logger.debug("Cached %s in %s cache (cost: %dKB)", key, self._name, cost // 1024)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def remove_all(self) -> None:
        with self._lock:
            self._store.clear()
            self._total_cost = 0
        logger.debug("%s cache cleared", self._name.capitalize())

    def remove_images_with_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with *prefix*. Returns count removed."""
        with self._lock:
            to_remove = [key for key in self._store if key.startswith(prefix)]
            for key in to_remove:
                self._remove(key)
        if to_remove:
            logger.debug("Removed %d %s cache entries with prefix %s", len(to_remove), self._name, prefix)
        return len(to_remove)

    def least_recently_used_keys(self, count: int) -> list[str]:
        """Up to *count* keys, least recently used first."""
        with self._lock:
            keys: list[str] = []
            for key in self._store:
                if len(keys) >= count:
                    break
                keys.append(key)
            return keys

    def handle_memory_pressure(self) -> None:
        logger.info("Memory pressure - clearing %s cache", self._name)
        self.remove_all()

    def stats(self) -> MemoryCacheStats:
        with self._lock:
            return MemoryCacheStats(
                entries=len(self._store),
                count_limit=self._count_limit,
                cost_limit_bytes=self._cost_limit_bytes,
                cost_bytes=self._total_cost,
                hits=self._hits,
                misses=self._misses,
                least_recently_used=self.least_recently_used_keys(_STATS_LRU_PREVIEW),
            )

    @property
    def count_limit(self) -> int:
        return self._count_limit

    @count_limit.setter
    def count_limit(self, value: int) -> None:
        with self._lock:
            self._count_limit = value
            while self._over_budget() and self._store:
                self._evict_oldest()

    @property
    def total_cost(self) -> int:
        with self._lock:
            return self._total_cost

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        # Membership test only; does not promote
        with self._lock:
            return key in self._store

    def _over_budget(self) -> bool:
        return (
            len(self._store) > self._count_limit
            or self._total_cost > self._cost_limit_bytes
        )

    def _remove(self, key: str) -> bool:
        entry = self._store.pop(key, None)
        if entry is None:
            return False
        self._total_cost -= entry.cost
        return True

    def _evict_oldest(self) -> None:
        key, entry = self._store.popitem(last=False)
        self._total_cost -= entry.cost
        logger.debug("Evicted %s from %s cache", key, self._name)
