"""
Shared utilities for the multilingual content layer.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace and content correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Async retry with exponential backoff
- test_helpers: Fakes and factories for tests

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
