"""
Content resolution service: translation cache, fallback resolution and warmup.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from fastapi import Header, Query
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.config import ContentServiceConfig, get_config
from shared.errors import ContentNotFoundError, ValidationError
from shared.logging import set_content_context
from shared.retry import RetryConfig
from service_content.app.adapters.cms_client import CMSContentClient
from service_content.app.caching.cache_store import CacheStore
from service_content.app.caching.persistence import PersistenceAdapter, create_snapshot_slot
from service_content.app.caching.preloader import Preloader
from service_content.app.caching.stats import CacheStatsReporter
from service_content.app.caching.sweeper import ExpirySweeper
from service_content.app.content.loader import ContentLoader, FetchContent
from service_content.app.fallback.chains import FallbackChains
from service_content.app.fallback.completeness import CompletenessPredicate
from service_content.app.fallback.resolver import FallbackResolver
from service_content.app.preferences import negotiate_language, preference_for


class PreloadRequest(BaseModel):
    """Body of POST /api/v1/cache/preload; omitted lists use the configured defaults."""

    namespaces: Optional[List[str]] = Field(default=None)
    languages: Optional[List[str]] = Field(default=None)


class ContentService(BaseService):
    """Content resolution service implementation."""

    def __init__(
        self,
        config: Optional[ContentServiceConfig] = None,
        fetch: Optional[FetchContent] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__("content", config or get_config())

        # Fail fast on a broken fallback configuration
        self.chains = FallbackChains.from_config(self.config.fallback_chains, self.config.default_language)

        self.store = CacheStore(
            max_age=self.config.cache_max_age_seconds,
            max_size=self.config.cache_max_size,
            eviction_ratio=self.config.cache_eviction_ratio,
            clock=clock,
        )

        self.cms_client: Optional[CMSContentClient] = None
        if fetch is None:
            self.cms_client = CMSContentClient(
                self.config.cms_base_url,
                timeout=self.config.cms_timeout_seconds,
                retry_config=RetryConfig(
                    max_attempts=self.config.cms_retry_attempts,
                    base_delay=self.config.cms_retry_base_delay,
                ),
            )
            fetch = self.cms_client.fetch_content

        self.loader = ContentLoader(self.store, fetch, metrics=self.metrics)
        self.resolver = FallbackResolver(
            self.loader,
            self.chains,
            predicate=CompletenessPredicate(self.config.required_fields),
            merge_fields=self.config.merge_fields,
            metrics=self.metrics,
        )
        self.preloader = Preloader(
            self.loader,
            default_namespaces=self.config.preload_namespaces,
            default_languages=self.chains.languages,
            concurrency=self.config.preload_concurrency,
            metrics=self.metrics,
        )
        self.stats_reporter = CacheStatsReporter(self.store, metrics=self.metrics)
        self.stats_reporter.attach()
        self.sweeper = ExpirySweeper(self.store, interval_seconds=self.config.cache_sweep_interval_seconds)

        self.persistence: Optional[PersistenceAdapter] = None
        slot = create_snapshot_slot(
            self.config.persistence_backend,
            path=self.config.persistence_path,
            redis_url=self.config.redis_url,
            key=self.config.persistence_key,
        )
        if slot is not None:
            self.persistence = PersistenceAdapter(
                self.store, slot, debounce_seconds=self.config.persistence_debounce_seconds
            )

        @self.app.on_event("startup")
        async def _startup():
            await self.startup()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.shutdown()

        self._setup_content_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.content_service = self

    async def startup(self) -> None:
        if self.persistence is not None:
            await self.persistence.restore()
            self.persistence.attach()
        self.sweeper.start()
        if self.config.preload_on_startup:
            await self.preloader.warmup()
        self.logger.info(
            "Content service started",
            languages=self.chains.languages,
            default_language=self.chains.default_language,
            cached_entries=len(self.store),
            persistence=self.config.persistence_backend,
        )

    async def shutdown(self) -> None:
        await self.sweeper.stop()
        if self.persistence is not None:
            await self.persistence.close()
        if self.cms_client is not None:
            await self.cms_client.close()
        self.logger.info("Content service stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "cache": "ok",
            "sweeper": "running" if self.sweeper.running else "stopped",
            "persistence": self.persistence.slot.describe() if self.persistence else "disabled",
        }

    def _check_languages(self, languages: List[str]) -> None:
        unsupported = [language for language in languages if not self.chains.is_supported(language)]
        if unsupported:
            raise ValidationError(
                "Unsupported languages",
                {"unsupported": unsupported, "supported": self.chains.languages},
            )

    def _setup_content_routes(self):
        """Set up content resolution and cache routes."""

        @self.app.get("/api/v1/content/{namespace}")
        async def get_content(
            namespace: str,
            language: Optional[str] = Query(None, min_length=2, max_length=16),
            merge: bool = Query(True),
            accept_language: Optional[str] = Header(None),
        ):
            """Resolve a namespace in the requested language, following the fallback chain."""
            resolved_language = negotiate_language(
                language, accept_language, self.chains.languages, self.chains.default_language
            )
            set_content_context(namespace, resolved_language)

            if merge:
                result = await self.resolver.resolve_merged(namespace, resolved_language)
            else:
                result = await self.resolver.resolve(namespace, resolved_language)

            if not result.found:
                raise ContentNotFoundError(namespace, resolved_language, {"tried": result.tried})

            return result.to_dict()

        @self.app.get("/api/v1/languages")
        async def list_languages():
            """Supported languages with their fallback chains and regional preferences."""
            chains = self.chains.to_dict()
            return {
                "default_language": self.chains.default_language,
                "languages": [
                    {
                        "language": language,
                        "fallback": chains[language],
                        "preferences": preference_for(language, self.chains.default_language).model_dump(),
                    }
                    for language in self.chains.languages
                ],
            }

        @self.app.get("/api/v1/cache/stats")
        async def get_cache_stats():
            """Get cache statistics."""
            return self.stats_reporter.stats()

        @self.app.post("/api/v1/cache/preload")
        async def preload_cache(body: Optional[PreloadRequest] = None):
            """Warm the cache for the given namespaces and languages."""
            body = body or PreloadRequest()
            namespaces = body.namespaces if body.namespaces is not None else self.preloader.default_namespaces
            languages = body.languages if body.languages is not None else self.chains.languages
            self._check_languages(languages)

            summary = await self.preloader.preload(namespaces, languages)
            return {
                "message": "Cache preloaded",
                "namespaces": namespaces,
                "languages": languages,
                "summary": summary.to_dict(),
            }

        @self.app.post("/api/v1/cache/sweep")
        async def sweep_cache():
            """Remove expired entries now instead of waiting for the sweeper."""
            evicted = self.sweeper.sweep_once()
            return {"evicted": evicted, "remaining": len(self.store)}

        @self.app.delete("/api/v1/cache")
        async def clear_cache(
            namespace: Optional[str] = Query(None, min_length=1),
            language: Optional[str] = Query(None, min_length=2),
        ):
            """Clear the whole cache, or one namespace (optionally one language of it)."""
            if namespace is None:
                if language is not None:
                    raise ValidationError("language requires namespace", {"language": language})
                removed = len(self.store)
                self.store.clear()
            else:
                removed = self.store.invalidate(namespace, language)

            self.logger.info("Translation cache cleared", namespace=namespace, language=language, removed=removed)
            result: Dict[str, Any] = {"removed": removed, "remaining": len(self.store)}
            if self.persistence is not None:
                result["persisted"] = await self.persistence.flush()
            return result


def create_app(config: Optional[ContentServiceConfig] = None):
    """Create the FastAPI application."""
    service = ContentService(config)
    return service.app


if __name__ == "__main__":
    service = ContentService()
    service.run()
