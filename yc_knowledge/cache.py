"""
Bounded LRU cache with per-entry TTL.

Used twice by the knowledge base, as two independent instances:
- resource bodies (code -> Resource)
- whole search-result pages (serialized query -> SearchResult)

Entries are evicted lazily: an expired entry is removed when it is read.
The cache is mutated on every read (recency update), so all state sits
behind a single lock.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    data: V
    timestamp: float
    ttl: float


class LRUCache(Generic[V]):
    """LRU cache: OrderedDict order is recency order (oldest first)."""

    def __init__(
        self,
        max_size: int,
        default_ttl: float,
        clock: Optional[Callable[[], float]] = None,
        name: str = "cache",
    ):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries (>= 1)
            default_ttl: Entry lifetime in seconds when set() gets no ttl
            clock: Optional clock function for testing (defaults to time.monotonic)
            name: Label used in log messages
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.clock = clock or time.monotonic
        self.name = name
        self._entries: "OrderedDict[Hashable, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[V]:
        """Return cached value, or None on miss / expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if self.clock() - entry.timestamp >= entry.ttl:
                del self._entries[key]
                logger.debug(f"[{self.name}] expired: {key!r:.80}")
                return None

            self._entries.move_to_end(key)
            return entry.data

    def set(self, key: Hashable, value: V, ttl: Optional[float] = None) -> None:
        """Insert or replace an entry; evicts the LRU entry when full."""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"[{self.name}] evicted LRU entry: {evicted!r:.80}")

            self._entries[key] = CacheEntry(
                data=value,
                timestamp=self.clock(),
                ttl=self.default_ttl if ttl is None else ttl,
            )
            self._entries.move_to_end(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._entries
