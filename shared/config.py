"""
Shared configuration management for the multilingual content layer.
"""

from typing import Any, Dict, List

from pydantic import Field, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


DEFAULT_FALLBACK_CHAINS: Dict[str, Dict[str, Any]] = {
    "en": {"secondary": ["vi", "tr"], "default": "vi"},
    "tr": {"secondary": ["en", "vi"], "default": "vi"},
    "vi": {"secondary": ["en", "tr"], "default": "vi"},
}


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    cms_base_url: str = Field(default="http://localhost:3000")
    cms_timeout_seconds: float = Field(default=10.0, gt=0)
    cms_retry_attempts: int = Field(default=3, ge=1, le=10)
    cms_retry_base_delay: float = Field(default=0.25, ge=0)


class ContentServiceConfig(BaseConfig):
    """Configuration for the content resolution service."""

    service_name: str = "content"
    port: int = 8020
    host: str = "0.0.0.0"

    # Translation cache
    cache_max_age_seconds: float = Field(default=600.0, gt=0)
    cache_max_size: int = Field(default=50, ge=1)
    cache_eviction_ratio: float = Field(default=0.8, gt=0, le=1)
    cache_sweep_interval_seconds: float = Field(default=60.0, gt=0)

    # Persistence
    persistence_backend: str = Field(default="file", pattern="^(file|redis|none)$")
    persistence_path: str = Field(default=".cache")
    persistence_key: str = Field(default="translation-cache")
    persistence_debounce_seconds: float = Field(default=1.0, ge=0)

    # Fallback resolution
    default_language: str = Field(default="vi")
    fallback_chains: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: {lang: dict(chain) for lang, chain in DEFAULT_FALLBACK_CHAINS.items()}
    )
    required_fields: List[str] = Field(
        default_factory=lambda: ["title", "content", "description", "name"]
    )
    merge_fields: List[str] = Field(
        default_factory=lambda: ["title", "content", "description", "name", "excerpt"]
    )

    # Preloading
    preload_namespaces: List[str] = Field(
        default_factory=lambda: ["common", "navigation", "forms", "errors"]
    )
    preload_concurrency: int = Field(default=5, ge=1)
    preload_on_startup: bool = Field(default=False)

    @property
    def supported_languages(self) -> List[str]:
        """Languages with a configured fallback chain, in declaration order."""
        return list(self.fallback_chains.keys())


def get_config(**overrides: Any) -> ContentServiceConfig:
    """Load service configuration, failing fast on invalid values."""
    try:
        return ContentServiceConfig(**overrides)
    except PydanticValidationError as exc:
        raise ConfigurationError(
            "Invalid content service configuration",
            details={"errors": [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ]},
        ) from exc

