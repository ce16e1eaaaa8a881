"""
In-memory translation/content bundle cache with LRU eviction and TTL expiry.
"""

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from shared.errors import ConfigurationError
from shared.logging import get_logger


DEFAULT_MAX_AGE_SECONDS = 600.0
DEFAULT_MAX_SIZE = 50
DEFAULT_EVICTION_RATIO = 0.8

CacheListener = Callable[[str, int], None]


def make_cache_key(namespace: str, language: str) -> str:
    """Render the serialized key for a (namespace, language) pair."""
    return f"{namespace}-{language}"


@dataclass
class CacheEntry:
    """A cached bundle for one (namespace, language) pair."""

    namespace: str
    language: str
    data: Dict[str, Any]
    timestamp: float
    last_access: float
    hits: int = 1

    @property
    def key(self) -> str:
        return make_cache_key(self.namespace, self.language)

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_expired(self, now: float, max_age: float) -> bool:
        return self.age(now) > max_age


@dataclass
class CacheCounters:
    """Running counters since the last clear()."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


@dataclass
class _Change:
    event: str
    count: int = 1


class CacheStore:
    """
    Keyed bundle cache shared by the resolver, loader and preloader.

    Entries are looked up by ``(namespace, language)``. A read never returns an
    entry older than ``max_age``; such entries stay in memory until
    ``sweep_expired`` runs. When an insertion pushes the store past
    ``max_size``, the least recently accessed entries are evicted down to
    ``ceil(max_size * eviction_ratio)`` so that a full cache does not evict on
    every single write.

    All mutation, including the bookkeeping done by ``get``, happens under one
    lock. Listeners registered with ``add_listener`` are called after the lock
    is released with ``(event, count)`` where event is one of ``hit``, ``put``,
    ``evict``, ``sweep``, ``invalidate``, ``clear`` or ``restore``.
    """

    def __init__(
        self,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        eviction_ratio: float = DEFAULT_EVICTION_RATIO,
        clock: Callable[[], float] = time.time,
    ):
        if max_age <= 0:
            raise ConfigurationError("Cache max_age must be positive", {"max_age": max_age})
        if max_size < 1:
            raise ConfigurationError("Cache max_size must be at least 1", {"max_size": max_size})
        if not 0 < eviction_ratio <= 1:
            raise ConfigurationError(
                "Cache eviction_ratio must be in (0, 1]", {"eviction_ratio": eviction_ratio}
            )

        self.max_age = max_age
        self.max_size = max_size
        self.eviction_ratio = eviction_ratio
        self.clock = clock
        self.logger = get_logger("content.cache_store")

        self._entries: "OrderedDict[Tuple[str, str], CacheEntry]" = OrderedDict()
        self._counters = CacheCounters()
        self._lock = threading.Lock()
        self._listeners: List[CacheListener] = []

    @property
    def eviction_target(self) -> int:
        """Entry count that LRU eviction shrinks the store down to."""
        return max(1, min(self.max_size, math.ceil(self.max_size * self.eviction_ratio)))

    def add_listener(self, listener: CacheListener) -> None:
        self._listeners.append(listener)

    def get(self, namespace: str, language: str) -> Optional[CacheEntry]:
        """Return the live entry for the key, recording the hit, or None."""
        key = (namespace, language)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            now = self.clock()
            if entry.is_expired(now, self.max_age):
                return None

            entry.hits += 1
            entry.last_access = now
            self._entries.move_to_end(key)
            self._counters.hits += 1

        self._notify([_Change("hit")])
        return entry

    def peek(self, namespace: str, language: str) -> Optional[CacheEntry]:
        """Look up an entry without touching its access bookkeeping or TTL."""
        with self._lock:
            return self._entries.get((namespace, language))

    def put(self, namespace: str, language: str, data: Dict[str, Any]) -> CacheEntry:
        """Insert or replace the entry for the key.

        A replaced entry keeps its hit count; timestamp and last access restart.
        """
        key = (namespace, language)
        changes = [_Change("put")]
        with self._lock:
            now = self.clock()
            previous = self._entries.pop(key, None)
            entry = CacheEntry(
                namespace=namespace,
                language=language,
                data=data,
                timestamp=now,
                last_access=now,
                hits=previous.hits if previous is not None else 1,
            )
            self._entries[key] = entry

            if len(self._entries) > self.max_size:
                evicted = self._evict_locked()
                if evicted:
                    changes.append(_Change("evict", evicted))

        self._notify(changes)
        return entry

    def evict_lru(self) -> int:
        """Evict least recently accessed entries if the store is over capacity."""
        with self._lock:
            if len(self._entries) <= self.max_size:
                return 0
            evicted = self._evict_locked()

        if evicted:
            self._notify([_Change("evict", evicted)])
        return evicted

    def _evict_locked(self) -> int:
        target = self.eviction_target
        # sorted() is stable, so equal access times fall back to recency order
        ordered = sorted(self._entries.items(), key=lambda item: item[1].last_access)
        excess = len(ordered) - target
        if excess <= 0:
            return 0

        for key, _ in ordered[:excess]:
            del self._entries[key]

        self._counters.evictions += excess
        self.logger.debug(
            "Evicted least recently used entries",
            evicted=excess,
            remaining=len(self._entries),
            max_size=self.max_size,
        )
        return excess

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Remove every entry older than max_age; returns the number removed."""
        with self._lock:
            now = self.clock() if now is None else now
            expired = [
                key for key, entry in self._entries.items()
                if entry.is_expired(now, self.max_age)
            ]
            for key in expired:
                del self._entries[key]
            self._counters.evictions += len(expired)

        if expired:
            self.logger.debug("Swept expired entries", evicted=len(expired))
            self._notify([_Change("sweep", len(expired))])
        return len(expired)

    def invalidate(self, namespace: str, language: Optional[str] = None) -> int:
        """Drop one key, or every language of a namespace when language is None."""
        with self._lock:
            if language is not None:
                keys = [(namespace, language)] if (namespace, language) in self._entries else []
            else:
                keys = [key for key in self._entries if key[0] == namespace]
            for key in keys:
                del self._entries[key]

        if keys:
            self._notify([_Change("invalidate", len(keys))])
        return len(keys)

    def clear(self) -> None:
        """Drop all entries and reset counters."""
        with self._lock:
            self._entries.clear()
            self._counters = CacheCounters()
        self._notify([_Change("clear", 0)])

    def record_miss(self) -> None:
        with self._lock:
            self._counters.misses += 1

    @property
    def counters(self) -> CacheCounters:
        with self._lock:
            return CacheCounters(
                hits=self._counters.hits,
                misses=self._counters.misses,
                evictions=self._counters.evictions,
            )

    def entries(self) -> List[CacheEntry]:
        """Copies of the current entries, least recently used first."""
        with self._lock:
            return [
                CacheEntry(
                    namespace=entry.namespace,
                    language=entry.language,
                    data=entry.data,
                    timestamp=entry.timestamp,
                    last_access=entry.last_access,
                    hits=entry.hits,
                )
                for entry in self._entries.values()
            ]

    def restore(self, entries: Iterable[CacheEntry]) -> int:
        """Replace the store contents with previously persisted entries.

        Expired entries are dropped and, if the snapshot was taken with a larger
        max_size, only the most recently accessed ones are kept. Counters are
        left untouched.
        """
        with self._lock:
            now = self.clock()
            live = [entry for entry in entries if not entry.is_expired(now, self.max_age)]
            live.sort(key=lambda entry: entry.last_access)
            if len(live) > self.max_size:
                live = live[-self.max_size:]

            self._entries.clear()
            for entry in live:
                self._entries[(entry.namespace, entry.language)] = entry
            restored = len(self._entries)

        self._notify([_Change("restore", restored)])
        return restored

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        with self._lock:
            return key in self._entries

    def _notify(self, changes: List[_Change]) -> None:
        for change in changes:
            for listener in list(self._listeners):
                try:
                    listener(change.event, change.count)
                except Exception as exc:
                    self.logger.warning(
                        "Cache listener failed",
                        cache_event=change.event,
                        error=str(exc),
                    )
