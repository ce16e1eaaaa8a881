"""
Cache-first bundle loading on top of the fetch collaborator.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..caching.cache_store import CacheStore


FetchContent = Callable[[str, str], Awaitable[Optional[Mapping[str, Any]]]]


@dataclass
class LoadResult:
    """Outcome of loading one (namespace, language) pair."""

    namespace: str
    language: str
    bundle: Optional[Dict[str, Any]] = None
    source: str = "empty"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ContentLoader:
    """Serves bundles from the cache and falls through to the fetch collaborator.

    Successful fetches are written back to the store. A failed fetch is
    reported in the result rather than raised, and a cancelled fetch leaves
    both the store and its miss counter untouched.
    """

    def __init__(self, store: CacheStore, fetch: FetchContent, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.fetch = fetch
        self.metrics = metrics
        self.logger = get_logger("content.loader")

    async def load(self, namespace: str, language: str) -> LoadResult:
        entry = self.store.get(namespace, language)
        if entry is not None:
            self._count("translation_cache_hits_total", language=language)
            return LoadResult(namespace, language, bundle=entry.data, source="cache")

        start_time = time.time()
        try:
            bundle = await self.fetch(namespace, language)
        except asyncio.CancelledError:
            self.logger.debug("Content fetch cancelled", namespace=namespace, language=language)
            raise
        except Exception as exc:
            self.store.record_miss()
            self._count("translation_cache_misses_total", language=language)
            self._record_fetch(language, "error", start_time)
            self.logger.warning(
                "Content fetch failed",
                namespace=namespace,
                language=language,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return LoadResult(namespace, language, source="error", error=str(exc))

        self.store.record_miss()
        self._count("translation_cache_misses_total", language=language)

        if bundle is None:
            self._record_fetch(language, "empty", start_time)
            return LoadResult(namespace, language, source="empty")

        if not isinstance(bundle, Mapping):
            self._record_fetch(language, "error", start_time)
            self.logger.warning(
                "Content fetch returned a non-mapping bundle",
                namespace=namespace,
                language=language,
                bundle_type=type(bundle).__name__,
            )
            return LoadResult(namespace, language, source="error", error="bundle is not a mapping")

        data = dict(bundle)
        self.store.put(namespace, language, data)
        self._record_fetch(language, "success", start_time)
        return LoadResult(namespace, language, bundle=data, source="fetch")

    def _count(self, metric_name: str, **labels: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def _record_fetch(self, language: str, result: str, start_time: float) -> None:
        if self.metrics is None:
            return
        self.metrics.increment_counter("content_fetch_total", language=language, result=result)
        self.metrics.observe_histogram("content_fetch_duration_seconds", time.time() - start_time, language=language)
