"""
Shared metrics configuration for the multilingual content layer.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, generate_latest
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so that several service instances (tests,
    embedded use) can coexist in one process without duplicate registrations.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "content":
            self._setup_content_metrics()

    def _setup_content_metrics(self):
        """Set up translation cache and fallback metrics."""
        self._metrics["translation_cache_hits_total"] = Counter(
            "translation_cache_hits_total",
            "Total translation cache hits",
            ["language"],
            registry=self.registry
        )

        self._metrics["translation_cache_misses_total"] = Counter(
            "translation_cache_misses_total",
            "Total translation cache misses",
            ["language"],
            registry=self.registry
        )

        self._metrics["translation_cache_evictions_total"] = Counter(
            "translation_cache_evictions_total",
            "Total translation cache evictions",
            ["reason"],
            registry=self.registry
        )

        self._metrics["translation_cache_entries"] = Gauge(
            "translation_cache_entries",
            "Number of live translation cache entries",
            registry=self.registry
        )

        self._metrics["translation_cache_size_bytes"] = Gauge(
            "translation_cache_size_bytes",
            "Estimated serialized size of the translation cache",
            registry=self.registry
        )

        self._metrics["translation_cache_hit_ratio"] = Gauge(
            "translation_cache_hit_ratio",
            "Translation cache hit ratio",
            registry=self.registry
        )

        self._metrics["fallback_resolutions_total"] = Counter(
            "fallback_resolutions_total",
            "Content resolutions by requested and served language",
            ["requested_language", "language_used", "used_fallback"],
            registry=self.registry
        )

        self._metrics["content_fetch_total"] = Counter(
            "content_fetch_total",
            "CMS content fetches",
            ["language", "result"],
            registry=self.registry
        )

        self._metrics["content_fetch_duration_seconds"] = Histogram(
            "content_fetch_duration_seconds",
            "CMS content fetch duration in seconds",
            ["language"],
            registry=self.registry
        )

        self._metrics["preload_pairs_total"] = Counter(
            "preload_pairs_total",
            "Preloaded (namespace, language) pairs",
            ["result"],
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in Prometheus exposition format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, amount: float = 1.0, **labels):
        """Increment a counter metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        with self._lock:
            if labels:
                metric.labels(**labels).inc(amount)
            else:
                metric.inc(amount)

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        if labels:
            metric.labels(**labels).set(value)
        else:
            metric.set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)

