"""Bounded LRU map with idle expiry.

Backs the in-process session store: entries expire after a period of
inactivity and the least recently used entry is evicted past ``max_size``.
Client-supplied keys are stored under a short xxhash digest.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Generic, TypeVar

from .hash import Algorithm, hash_string

T = TypeVar("T")


@dataclass
class Stats:
    """Counters for one cache instance."""

    size: int = 0
    max_size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "hit_rate": self.hit_rate}


@dataclass(slots=True)
class _Entry(Generic[T]):
    key: str
    value: T
    stamp: float


class LRUCache(Generic[T]):
    """
    LRU map whose entries expire ``ttl_seconds`` after they were stored.

    With ``sliding=True`` every hit restamps the entry, so the TTL measures
    idle time rather than age. ``on_evict`` receives the caller's key for
    both evictions and expirations, never for explicit deletes.

    Examples:
        >>> sessions = LRUCache[dict](max_size=2, ttl_seconds=60, sliding=True)
        >>> sessions.set("sess_a", {})
        >>> sessions.get("sess_a")
        {}
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float | None = None,
        sliding: bool = False,
        on_evict: Callable[[str], None] | None = None,
        hash_algorithm: Algorithm = Algorithm.XXHASH64,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.sliding = sliding
        self.hash_algorithm = hash_algorithm
        self._on_evict = on_evict
        self._clock = clock
        self._entries: OrderedDict[str, _Entry[T]] = OrderedDict()
        self._stats = Stats(max_size=max_size)

    def _slot(self, key: str) -> str:
        return hash_string(key, self.hash_algorithm, truncate=16)

    def _stale(self, entry: _Entry[T], now: float) -> bool:
        return self.ttl_seconds is not None and now - entry.stamp >= self.ttl_seconds

    def _remove(self, slot: str, *, expired: bool) -> None:
        entry = self._entries.pop(slot)
        if expired:
            self._stats.expirations += 1
        else:
            self._stats.evictions += 1
        self._stats.size = len(self._entries)
        if self._on_evict is not None:
            self._on_evict(entry.key)

    def get(self, key: str) -> T | None:
        """Live value for ``key``, or None; a hit marks it most recently used."""
        slot = self._slot(key)
        entry = self._entries.get(slot)
        now = self._clock()

        if entry is not None and self._stale(entry, now):
            self._remove(slot, expired=True)
            entry = None
        if entry is None:
            self._stats.misses += 1
            return None

        self._entries.move_to_end(slot)
        if self.sliding:
            entry.stamp = now
        self._stats.hits += 1
        return entry.value

    def set(self, key: str, value: T) -> None:
        slot = self._slot(key)
        self._entries.pop(slot, None)
        self._entries[slot] = _Entry(key, value, self._clock())

        while len(self._entries) > self.max_size:
            self._remove(next(iter(self._entries)), expired=False)
        self._stats.size = len(self._entries)

    def delete(self, key: str) -> bool:
        """Drop ``key`` silently; False when it was not present."""
        removed = self._entries.pop(self._slot(key), None) is not None
        self._stats.size = len(self._entries)
        return removed

    def purge_expired(self) -> int:
        """Drop every expired entry, returning how many were dropped."""
        now = self._clock()
        stale = [slot for slot, entry in self._entries.items() if self._stale(entry, now)]
        for slot in stale:
            self._remove(slot, expired=True)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._stats.size = 0

    @property
    def stats(self) -> Stats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # No recency or TTL side effects.
        return self._slot(key) in self._entries


__all__ = ["LRUCache", "Stats"]
