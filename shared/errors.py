"""
Shared error handling for the multilingual content layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ContentLayerException(Exception):
    """Base exception for content layer services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(ContentLayerException):
    """Invalid service configuration; raised at startup and never recovered."""

    status_code = 500

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ValidationError(ContentLayerException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ContentNotFoundError(ContentLayerException):
    """No bundle could be produced for a namespace in any language."""

    status_code = 404

    def __init__(self, namespace: str, language: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "CONTENT_NOT_FOUND",
            f"No content available for '{namespace}' in any language",
            {"namespace": namespace, "language": language, **(details or {})},
        )


class ExternalServiceError(ContentLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class ContentFetchError(ExternalServiceError):
    """The CMS could not deliver a bundle for a (namespace, language) pair."""

    def __init__(self, namespace: str, language: str, message: str = "Content fetch failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "cms",
            message,
            {"namespace": namespace, "language": language, **(details or {})},
        )
        self.namespace = namespace
        self.language = language


class PersistenceError(ContentLayerException):
    """Reading or writing the persisted cache snapshot failed."""

    status_code = 500

    def __init__(self, message: str = "Persistence failure", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)
