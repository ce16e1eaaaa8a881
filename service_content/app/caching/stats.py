"""
Cache statistics reporting.
"""

import json
from typing import Any, Dict, Optional

from shared.metrics import MetricsCollector
from .cache_store import CacheStore


class CacheStatsReporter:
    """Summarizes a CacheStore and mirrors the figures into Prometheus."""

    def __init__(self, store: CacheStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics

    def attach(self) -> None:
        """Count evictions by reason as they happen."""
        self.store.add_listener(self._on_store_change)

    def stats(self) -> Dict[str, Any]:
        """
        Snapshot of cache usage.

        ``size_bytes`` is the length of the JSON-serialized entry data, an
        estimate rather than the process's real memory use.
        """
        now = self.store.clock()
        entries = self.store.entries()
        counters = self.store.counters

        size_bytes = sum(
            len(json.dumps(entry.data, ensure_ascii=False, default=str).encode("utf-8"))
            for entry in entries
        )
        per_entry = sorted(
            (
                {
                    "key": entry.key,
                    "namespace": entry.namespace,
                    "language": entry.language,
                    "hits": entry.hits,
                    "age_seconds": round(entry.age(now), 3),
                    "last_access": entry.last_access,
                }
                for entry in entries
            ),
            key=lambda item: item["hits"],
            reverse=True,
        )

        report = {
            "total_entries": len(entries),
            "max_size": self.store.max_size,
            "max_age_seconds": self.store.max_age,
            "hits": counters.hits,
            "misses": counters.misses,
            "evictions": counters.evictions,
            "hit_rate": round(counters.hit_rate, 4),
            "size_bytes": size_bytes,
            "entries": per_entry,
        }

        if self.metrics is not None:
            self.metrics.set_gauge("translation_cache_entries", report["total_entries"])
            self.metrics.set_gauge("translation_cache_size_bytes", size_bytes)
            self.metrics.set_gauge("translation_cache_hit_ratio", counters.hit_rate)

        return report

    def _on_store_change(self, event: str, count: int) -> None:
        if self.metrics is None:
            return
        if event in ("evict", "sweep") and count:
            reason = "lru" if event == "evict" else "expired"
            self.metrics.increment_counter("translation_cache_evictions_total", count, reason=reason)
        if event != "hit":
            self.metrics.set_gauge("translation_cache_entries", len(self.store))
