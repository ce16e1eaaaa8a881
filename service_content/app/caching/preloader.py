"""
Concurrent cache warmup for (namespace, language) pairs.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..content.loader import ContentLoader, LoadResult


@dataclass
class PreloadSummary:
    """Per-pair outcome of a preload run."""

    cached: List[str] = field(default_factory=list)
    fetched: List[str] = field(default_factory=list)
    empty: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.cached) + len(self.fetched) + len(self.empty) + len(self.failed)

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "cached": self.cached,
            "fetched": self.fetched,
            "empty": self.empty,
            "failed": self.failed,
        }


class Preloader:
    """Loads every requested pair through the ContentLoader, bounded by a semaphore."""

    def __init__(
        self,
        loader: ContentLoader,
        default_namespaces: Sequence[str] = ("common", "navigation", "forms", "errors"),
        default_languages: Sequence[str] = ("vi", "en", "tr"),
        concurrency: int = 5,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.loader = loader
        self.default_namespaces = list(default_namespaces)
        self.default_languages = list(default_languages)
        self.concurrency = max(1, concurrency)
        self.metrics = metrics
        self.logger = get_logger("content.preloader")

    async def preload(self, namespaces: Iterable[str], languages: Optional[Iterable[str]] = None) -> PreloadSummary:
        """Warm the cache for every (namespace, language) pair.

        One pair failing does not cancel the others; failures land in
        ``PreloadSummary.failed`` keyed by the pair's cache key.
        """
        languages = list(languages) if languages is not None else list(self.default_languages)
        pairs: List[Tuple[str, str]] = []
        for namespace in namespaces:
            for language in languages:
                if (namespace, language) not in pairs:
                    pairs.append((namespace, language))

        semaphore = asyncio.Semaphore(self.concurrency)

        async def load_pair(namespace: str, language: str) -> LoadResult:
            async with semaphore:
                return await self.loader.load(namespace, language)

        results = await asyncio.gather(
            *(load_pair(namespace, language) for namespace, language in pairs),
            return_exceptions=True,
        )

        summary = PreloadSummary()
        for (namespace, language), result in zip(pairs, results):
            key = f"{namespace}-{language}"
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                summary.failed[key] = str(result)
                outcome = "error"
            elif result.source == "error":
                summary.failed[key] = result.error or "fetch failed"
                outcome = "error"
            elif result.source == "cache":
                summary.cached.append(key)
                outcome = "cached"
            elif result.source == "fetch":
                summary.fetched.append(key)
                outcome = "fetched"
            else:
                summary.empty.append(key)
                outcome = "empty"

            if self.metrics is not None:
                self.metrics.increment_counter("preload_pairs_total", result=outcome)

        self.logger.info(
            "Preload completed",
            pairs=summary.total,
            cached=len(summary.cached),
            fetched=len(summary.fetched),
            empty=len(summary.empty),
            failed=len(summary.failed),
        )
        return summary

    async def warmup(self) -> Optional[PreloadSummary]:
        """Preload the common namespaces in every supported language. Never raises."""
        try:
            return await self.preload(self.default_namespaces, self.default_languages)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.error("Cache warmup failed", error=str(exc))
            return None
