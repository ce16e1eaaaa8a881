"""
Fallback-chain resolution of content bundles.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from opentelemetry import trace

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..content.loader import ContentLoader
from .chains import FallbackChains
from .completeness import CompletenessPredicate
from .merger import DEFAULT_MERGE_FIELDS, MergedBundle, merge_content


tracer = trace.get_tracer(__name__)


@dataclass
class ResolvedContent:
    """Outcome of one resolve() call."""

    namespace: str
    requested_language: str
    language_used: str
    used_fallback: bool
    bundle: Optional[Dict[str, Any]] = None
    primary: Optional[Dict[str, Any]] = None
    tried: List[str] = field(default_factory=list)
    merged: Optional[MergedBundle] = None

    @property
    def found(self) -> bool:
        return self.bundle is not None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "namespace": self.namespace,
            "requested_language": self.requested_language,
            "language_used": self.language_used,
            "used_fallback": self.used_fallback,
            "tried": list(self.tried),
            "data": self.bundle,
        }
        if self.merged is not None:
            result["data"] = self.merged.data
            result["used_fallback_language"] = self.merged.used_fallback_language
            result["field_languages"] = self.merged.field_languages
        return result


class FallbackResolver:
    """
    Walks a language's fallback chain until a complete bundle turns up.

    Candidates are tried strictly in declared order: the requested language,
    its secondaries, then the chain default. The first bundle the
    completeness predicate accepts wins. A failed fetch for one candidate is
    logged by the loader and skipped; resolution as a whole never raises
    except for cancellation.
    """

    def __init__(
        self,
        loader: ContentLoader,
        chains: FallbackChains,
        predicate: Optional[CompletenessPredicate] = None,
        merge_fields: Iterable[str] = DEFAULT_MERGE_FIELDS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.loader = loader
        self.chains = chains
        self.predicate = predicate or CompletenessPredicate()
        self.merge_fields = tuple(merge_fields)
        self.metrics = metrics
        self.logger = get_logger("content.resolver")

    async def resolve(self, namespace: str, requested_language: Optional[str] = None) -> ResolvedContent:
        language = requested_language or self.chains.default_language
        chain = self.chains.chain_for(language)

        with tracer.start_as_current_span("content.resolve") as span:
            span.set_attribute("content.namespace", namespace)
            span.set_attribute("content.requested_language", language)

            tried = [language]
            primary = await self._load(namespace, language)
            if not self.predicate.is_missing(primary):
                result = ResolvedContent(
                    namespace=namespace,
                    requested_language=language,
                    language_used=language,
                    used_fallback=False,
                    bundle=primary,
                    primary=primary,
                    tried=tried,
                )
                return self._finish(span, result)

            for candidate in chain.candidates():
                tried.append(candidate)
                bundle = await self._load(namespace, candidate)
                if not self.predicate.is_missing(bundle):
                    self.logger.info(
                        "Resolved content through fallback",
                        namespace=namespace,
                        requested_language=language,
                        language_used=candidate,
                    )
                    result = ResolvedContent(
                        namespace=namespace,
                        requested_language=language,
                        language_used=candidate,
                        used_fallback=True,
                        bundle=bundle,
                        primary=primary,
                        tried=tried,
                    )
                    return self._finish(span, result)

            self.logger.warning(
                "No complete content in any fallback language",
                namespace=namespace,
                requested_language=language,
                tried=tried,
                has_primary=primary is not None,
            )
            result = ResolvedContent(
                namespace=namespace,
                requested_language=language,
                language_used=language,
                used_fallback=False,
                bundle=primary,
                primary=primary,
                tried=tried,
            )
            return self._finish(span, result)

    async def resolve_merged(self, namespace: str, requested_language: Optional[str] = None) -> ResolvedContent:
        """Resolve, then complete the primary bundle's blank fields from the fallback.

        The primary's translated fields are kept; only blank merge fields are
        taken from the language the resolver fell back to.
        """
        result = await self.resolve(namespace, requested_language)

        if result.used_fallback:
            result.merged = merge_content(
                result.primary,
                result.bundle,
                self.merge_fields,
                primary_language=result.requested_language,
                fallback_language=result.language_used,
            )
        elif result.bundle is not None:
            result.merged = MergedBundle(data=dict(result.bundle), primary_language=result.language_used)

        return result

    async def _load(self, namespace: str, language: str) -> Optional[Dict[str, Any]]:
        try:
            loaded = await self.loader.load(namespace, language)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.warning(
                "Skipping fallback candidate after load failure",
                namespace=namespace,
                language=language,
                error=str(exc),
            )
            return None
        return loaded.bundle

    def _finish(self, span: Any, result: ResolvedContent) -> ResolvedContent:
        span.set_attribute("content.language_used", result.language_used)
        span.set_attribute("content.used_fallback", result.used_fallback)
        if self.metrics is not None:
            self.metrics.increment_counter(
                "fallback_resolutions_total",
                requested_language=result.requested_language,
                language_used=result.language_used,
                used_fallback=str(result.used_fallback).lower(),
            )
        return result
