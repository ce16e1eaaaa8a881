"""
Unit tests for the Content service HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from shared.config import ContentServiceConfig
from shared.errors import ConfigurationError
from shared.test_helpers import ContentDataFactory, FakeClock, StubFetch
from service_content.app.main import ContentService, create_app


CATALOG = {
    ("about", "vi"): ContentDataFactory.bundle("vi", "about"),
    ("about", "en"): ContentDataFactory.bundle("en", "about"),
    ("about", "tr"): {"slug": "hakkimizda", "title": "", "excerpt": "Kısa özet"},
    ("common", "vi"): ContentDataFactory.bundle("vi", "common"),
}


class TestContentService:
    """Test cases for ContentService."""

    @pytest.fixture
    def config(self):
        return ContentServiceConfig(persistence_backend="none", cache_max_size=10)

    @pytest.fixture
    def fetch(self):
        return StubFetch(CATALOG)

    @pytest.fixture
    def clock(self):
        return FakeClock(1000.0)

    @pytest.fixture
    def service(self, config, fetch, clock):
        return ContentService(config=config, fetch=fetch, clock=clock)

    @pytest.fixture
    def client(self, service):
        with TestClient(service.app) as test_client:
            yield test_client

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "content"
        assert data["status"] == "ok"
        assert data["dependencies"]["persistence"] == "disabled"
        assert data["dependencies"]["sweeper"] == "running"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_get_content_in_requested_language(self, client):
        response = client.get("/api/v1/content/about", params={"language": "en"})

        assert response.status_code == 200
        data = response.json()
        assert data["language_used"] == "en"
        assert data["used_fallback"] is False
        assert data["data"]["title"] == "about title (en)"
        assert data["field_languages"] == {}

    def test_get_content_with_merged_fallback(self, client):
        response = client.get("/api/v1/content/about", params={"language": "tr"})

        data = response.json()
        assert data["requested_language"] == "tr"
        assert data["language_used"] == "en"
        assert data["used_fallback"] is True
        assert data["data"]["slug"] == "hakkimizda"
        assert data["data"]["excerpt"] == "Kısa özet"
        assert data["data"]["title"] == "about title (en)"
        assert data["field_languages"]["title"] == "en"

    def test_get_content_without_merge(self, client):
        response = client.get("/api/v1/content/about", params={"language": "tr", "merge": "false"})

        data = response.json()
        assert data["language_used"] == "en"
        assert data["data"] == CATALOG[("about", "en")]
        assert "field_languages" not in data

    def test_accept_language_header(self, client):
        response = client.get("/api/v1/content/about", headers={"Accept-Language": "de-DE, en;q=0.8"})

        assert response.json()["requested_language"] == "en"

    def test_default_language_without_hints(self, client):
        response = client.get("/api/v1/content/common")

        data = response.json()
        assert data["requested_language"] == "vi"
        assert data["language_used"] == "vi"

    def test_content_not_found(self, client):
        response = client.get("/api/v1/content/nothing", params={"language": "en"})

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "CONTENT_NOT_FOUND"
        assert data["details"]["tried"] == ["en", "vi", "tr"]

    def test_fetch_failure_falls_back(self, config, clock):
        fetch = StubFetch(CATALOG, failing={"en"})
        service = ContentService(config=config, fetch=fetch, clock=clock)

        with TestClient(service.app) as client:
            response = client.get("/api/v1/content/about", params={"language": "en"})

        assert response.status_code == 200
        data = response.json()
        assert data["language_used"] == "vi"
        assert data["used_fallback"] is True

    def test_languages(self, client):
        data = client.get("/api/v1/languages").json()

        assert data["default_language"] == "vi"
        languages = {item["language"]: item for item in data["languages"]}
        assert set(languages) == {"en", "tr", "vi"}
        assert languages["tr"]["fallback"] == {"secondary": ["en", "vi"], "default": "vi"}
        assert languages["vi"]["preferences"]["currency"] == "VND"

    def test_cache_stats(self, client):
        client.get("/api/v1/content/about", params={"language": "en"})
        client.get("/api/v1/content/about", params={"language": "en"})

        data = client.get("/api/v1/cache/stats").json()

        assert data["total_entries"] == 1
        assert data["hits"] == 1
        assert data["misses"] == 1
        assert data["hit_rate"] == 0.5
        assert data["entries"][0]["key"] == "about-en"

    def test_preload(self, client, fetch):
        response = client.post(
            "/api/v1/cache/preload",
            json={"namespaces": ["about", "common"], "languages": ["vi", "en"]},
        )

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["total"] == 4
        assert sorted(summary["fetched"]) == ["about-en", "about-vi", "common-vi"]
        assert summary["empty"] == ["common-en"]

    def test_preload_defaults(self, client, fetch):
        response = client.post("/api/v1/cache/preload")

        assert response.status_code == 200
        data = response.json()
        assert data["namespaces"] == ["common", "navigation", "forms", "errors"]
        assert data["languages"] == ["en", "tr", "vi"]
        assert data["summary"]["total"] == 12

    def test_preload_rejects_unsupported_languages(self, client):
        response = client.post("/api/v1/cache/preload", json={"languages": ["de"]})

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_sweep(self, client, clock):
        client.get("/api/v1/content/about", params={"language": "en"})
        clock.advance(601)

        data = client.post("/api/v1/cache/sweep").json()

        assert data == {"evicted": 1, "remaining": 0}

    def test_clear_cache(self, client):
        client.get("/api/v1/content/about", params={"language": "en"})
        client.get("/api/v1/content/common", params={"language": "vi"})

        namespace_only = client.delete("/api/v1/cache", params={"namespace": "about"}).json()
        everything = client.delete("/api/v1/cache").json()

        assert namespace_only == {"removed": 1, "remaining": 1}
        assert everything == {"removed": 1, "remaining": 0}
        assert client.get("/api/v1/cache/stats").json()["hits"] == 0

    def test_clear_language_requires_namespace(self, client):
        response = client.delete("/api/v1/cache", params={"language": "en"})
        assert response.status_code == 422

    def test_metrics_endpoint(self, client):
        client.get("/api/v1/content/about", params={"language": "tr"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "fallback_resolutions_total" in response.text
        assert "translation_cache_misses_total" in response.text

    def test_invalid_fallback_config_fails_fast(self):
        config = ContentServiceConfig(
            persistence_backend="none",
            fallback_chains={"vi": {"secondary": ["vi"], "default": "vi"}},
        )

        with pytest.raises(ConfigurationError):
            ContentService(config=config, fetch=StubFetch())

    def test_persistence_survives_restart(self, tmp_path, fetch, clock):
        config = ContentServiceConfig(persistence_backend="file", persistence_path=str(tmp_path))

        first = ContentService(config=config, fetch=fetch, clock=clock)
        with TestClient(first.app) as client:
            client.get("/api/v1/content/about", params={"language": "en"})

        second_fetch = StubFetch(CATALOG)
        second = ContentService(config=config, fetch=second_fetch, clock=clock)
        with TestClient(second.app) as client:
            data = client.get("/api/v1/content/about", params={"language": "en"}).json()

        assert data["language_used"] == "en"
        assert second_fetch.calls == []

    def test_create_app(self, monkeypatch):
        monkeypatch.setenv("CONTENT_PERSISTENCE_BACKEND", "none")
        app = create_app()
        assert app.state.content_service.config.persistence_backend == "none"
