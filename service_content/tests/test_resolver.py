"""
Unit tests for the content loader and the fallback resolver.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from shared.config import DEFAULT_FALLBACK_CHAINS
from shared.errors import ContentFetchError
from shared.metrics import MetricsCollector
from shared.test_helpers import ContentDataFactory, FakeClock, StubFetch
from service_content.app.caching.cache_store import CacheStore
from service_content.app.content.loader import ContentLoader
from service_content.app.fallback.chains import FallbackChains
from service_content.app.fallback.resolver import FallbackResolver


@pytest.fixture
def store():
    return CacheStore(max_age=600.0, max_size=50, clock=FakeClock(1000.0))


@pytest.fixture
def chains():
    return FallbackChains.from_config(DEFAULT_FALLBACK_CHAINS, "vi")


class TestContentLoader:
    """Test cases for ContentLoader."""

    @pytest.mark.asyncio
    async def test_fetch_populates_cache(self, store):
        fetch = StubFetch({("page", "en"): ContentDataFactory.bundle("en")})
        loader = ContentLoader(store, fetch)

        first = await loader.load("page", "en")
        second = await loader.load("page", "en")

        assert first.source == "fetch"
        assert second.source == "cache"
        assert second.bundle == first.bundle
        assert fetch.calls == [("page", "en")]
        assert store.counters.misses == 1
        assert store.counters.hits == 1

    @pytest.mark.asyncio
    async def test_empty_result_is_not_cached(self, store):
        fetch = StubFetch()
        loader = ContentLoader(store, fetch)

        result = await loader.load("page", "en")

        assert result.source == "empty"
        assert result.bundle is None
        assert len(store) == 0
        assert store.counters.misses == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported_not_raised(self, store):
        fetch = StubFetch(failing={"en"}, error=ContentFetchError("page", "en", "CMS unavailable"))
        loader = ContentLoader(store, fetch)

        result = await loader.load("page", "en")

        assert result.source == "error"
        assert not result.ok
        assert "CMS unavailable" in result.error
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_non_mapping_bundle_is_rejected(self, store):
        loader = ContentLoader(store, AsyncMock(return_value=["not", "a", "bundle"]))

        result = await loader.load("page", "en")

        assert result.source == "error"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_cancelled_fetch_leaves_no_trace(self, store):
        fetch = StubFetch({("page", "en"): ContentDataFactory.bundle("en")}, delay=10)
        loader = ContentLoader(store, fetch)

        task = asyncio.create_task(loader.load("page", "en"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(store) == 0
        assert store.counters.misses == 0
        assert store.counters.hits == 0

    @pytest.mark.asyncio
    async def test_records_metrics(self, store):
        metrics = MetricsCollector("content")
        fetch = StubFetch({("page", "en"): ContentDataFactory.bundle("en")})
        loader = ContentLoader(store, fetch, metrics=metrics)

        await loader.load("page", "en")
        await loader.load("page", "en")

        registry = metrics.registry
        assert registry.get_sample_value("translation_cache_misses_total", {"language": "en"}) == 1.0
        assert registry.get_sample_value("translation_cache_hits_total", {"language": "en"}) == 1.0
        assert registry.get_sample_value("content_fetch_total", {"language": "en", "result": "success"}) == 1.0


class TestFallbackResolver:
    """Test cases for FallbackResolver."""

    def make_resolver(self, store, chains, fetch, metrics=None):
        return FallbackResolver(ContentLoader(store, fetch), chains, metrics=metrics)

    @pytest.mark.asyncio
    async def test_complete_primary_is_served(self, store, chains):
        fetch = StubFetch(ContentDataFactory.create_catalog(["page"], ["vi", "en", "tr"]))
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "tr")

        assert result.language_used == "tr"
        assert result.used_fallback is False
        assert result.bundle["title"] == "page title (tr)"
        assert fetch.calls == [("page", "tr")]

    @pytest.mark.asyncio
    async def test_incomplete_primary_falls_back_to_first_secondary(self, store, chains):
        fetch = StubFetch({
            ("page", "tr"): {"title": ""},
            ("page", "en"): {"title": "Hello"},
            ("page", "vi"): ContentDataFactory.bundle("vi"),
        })
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "tr")

        assert result.language_used == "en"
        assert result.used_fallback is True
        assert result.bundle == {"title": "Hello"}
        assert result.primary == {"title": ""}
        assert fetch.calls_for("page") == ["tr", "en"]

    @pytest.mark.asyncio
    async def test_fetch_failure_moves_on_to_default(self, store, chains):
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")}, failing={"en"})
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "en")

        assert result.language_used == "vi"
        assert result.used_fallback is True
        assert result.bundle["title"] == "page title (vi)"
        assert result.tried == ["en", "vi"]

    @pytest.mark.asyncio
    async def test_secondaries_then_default_in_order(self, store, chains):
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")})
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "tr")

        assert fetch.calls_for("page") == ["tr", "en", "vi"]
        assert result.language_used == "vi"

    @pytest.mark.asyncio
    async def test_every_other_language_is_reachable(self, store, chains):
        fetch = StubFetch({
            ("page", "en"): {"title": ""},
            ("page", "vi"): ContentDataFactory.empty_bundle(),
            ("page", "tr"): ContentDataFactory.bundle("tr"),
        })
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "en")

        assert fetch.calls_for("page") == ["en", "vi", "tr"]
        assert result.language_used == "tr"
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_nothing_qualifies_returns_primary(self, store, chains):
        primary = ContentDataFactory.empty_bundle()
        fetch = StubFetch({("page", "tr"): primary}, failing={"vi"})
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "tr")

        assert result.used_fallback is False
        assert result.language_used == "tr"
        assert result.bundle == primary
        assert result.found

    @pytest.mark.asyncio
    async def test_nothing_at_all_returns_none(self, store, chains):
        resolver = self.make_resolver(store, chains, StubFetch(failing={"en", "tr", "vi"}))

        result = await resolver.resolve("page", "tr")

        assert result.bundle is None
        assert not result.found
        assert result.used_fallback is False

    @pytest.mark.asyncio
    async def test_unknown_language_uses_default_chain(self, store, chains):
        fetch = StubFetch({("page", "en"): ContentDataFactory.bundle("en")})
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page", "fr")

        assert fetch.calls_for("page") == ["fr", "en"]
        assert result.language_used == "en"
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_no_language_means_default(self, store, chains):
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")})
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve("page")

        assert result.requested_language == "vi"
        assert result.used_fallback is False

    @pytest.mark.asyncio
    async def test_resolution_is_deterministic(self, chains):
        catalog = {
            ("page", "tr"): {"title": " "},
            ("page", "en"): {"content": "Body"},
            ("page", "vi"): ContentDataFactory.bundle("vi"),
        }

        outcomes = set()
        for _ in range(5):
            store = CacheStore(clock=FakeClock())
            resolver = self.make_resolver(store, chains, StubFetch(catalog))
            outcomes.add((await resolver.resolve("page", "tr")).language_used)

        assert outcomes == {"en"}

    @pytest.mark.asyncio
    async def test_resolve_uses_cache(self, store, chains):
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")})
        resolver = self.make_resolver(store, chains, fetch)

        await resolver.resolve("page", "vi")
        await resolver.resolve("page", "vi")

        assert fetch.calls == [("page", "vi")]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, store, chains):
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")}, delay=10)
        resolver = self.make_resolver(store, chains, fetch)

        task = asyncio.create_task(resolver.resolve("page", "vi"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_resolve_merged_keeps_translated_fields(self, store, chains):
        fetch = StubFetch({
            ("page", "tr"): {"title": "", "description": "Türkçe açıklama", "slug": "hakkimizda"},
            ("page", "en"): {"title": "About us", "description": "English description", "slug": "about"},
        })
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve_merged("page", "tr")

        # The tr bundle has a description, so it is not "missing"
        assert result.used_fallback is False
        assert result.merged.data["description"] == "Türkçe açıklama"

    @pytest.mark.asyncio
    async def test_resolve_merged_after_fallback(self, store, chains):
        fetch = StubFetch({
            ("page", "tr"): {"title": "", "excerpt": "Kısa özet", "slug": "hakkimizda"},
            ("page", "en"): {"title": "About us", "excerpt": "Short", "slug": "about"},
        })
        resolver = self.make_resolver(store, chains, fetch)

        result = await resolver.resolve_merged("page", "tr")
        payload = result.to_dict()

        assert result.used_fallback is True
        assert payload["data"] == {"title": "About us", "excerpt": "Kısa özet", "slug": "hakkimizda"}
        assert payload["used_fallback_language"] == "en"
        assert payload["field_languages"] == {"title": "en"}

    @pytest.mark.asyncio
    async def test_records_resolution_metric(self, store, chains):
        metrics = MetricsCollector("content")
        fetch = StubFetch({("page", "vi"): ContentDataFactory.bundle("vi")})
        resolver = self.make_resolver(store, chains, fetch, metrics=metrics)

        await resolver.resolve("page", "en")

        value = metrics.registry.get_sample_value(
            "fallback_resolutions_total",
            {"requested_language": "en", "language_used": "vi", "used_fallback": "true"},
        )
        assert value == 1.0
