"""
Test helper functions and factory methods for the multilingual content layer.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set, Tuple


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ContentDataFactory:
    """Factory for creating content bundles."""

    @staticmethod
    def bundle(language: str, namespace: str = "page", **overrides: Any) -> Dict[str, Any]:
        """A complete bundle whose text fields are tagged with the language."""
        data = {
            "slug": namespace,
            "title": f"{namespace} title ({language})",
            "content": f"{namespace} content ({language})",
            "description": f"{namespace} description ({language})",
            "excerpt": f"{namespace} excerpt ({language})",
        }
        data.update(overrides)
        return data

    @staticmethod
    def empty_bundle(namespace: str = "page") -> Dict[str, Any]:
        """A bundle with structure but no translated text."""
        return {"slug": namespace, "title": "", "content": None, "description": "   "}

    @staticmethod
    def create_catalog(
        namespaces: List[str],
        languages: List[str],
    ) -> Dict[Tuple[str, str], Dict[str, Any]]:
        return {
            (namespace, language): ContentDataFactory.bundle(language, namespace)
            for namespace in namespaces
            for language in languages
        }


class StubFetch:
    """
    In-memory fetch collaborator.

    Serves bundles from ``catalog``; pairs or languages listed in ``failing``
    raise ``error``; ``delay`` suspends every call so tests can cancel it.
    Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        catalog: Optional[Dict[Tuple[str, str], Dict[str, Any]]] = None,
        failing: Optional[Set[Any]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.catalog = dict(catalog or {})
        self.failing = set(failing or ())
        self.error = error or ConnectionError("CMS unreachable")
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []

    async def __call__(self, namespace: str, language: str) -> Optional[Dict[str, Any]]:
        self.calls.append((namespace, language))
        if self.delay:
            await asyncio.sleep(self.delay)
        if language in self.failing or (namespace, language) in self.failing:
            raise self.error
        bundle = self.catalog.get((namespace, language))
        return dict(bundle) if bundle is not None else None

    def calls_for(self, namespace: str) -> List[str]:
        return [language for ns, language in self.calls if ns == namespace]
