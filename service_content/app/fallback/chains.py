"""
Fallback chain configuration and its startup validation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from shared.errors import ConfigurationError


@dataclass(frozen=True)
class FallbackChain:
    """Ordered alternates for one requested language, ending at a default language."""

    language: str
    secondary: Tuple[str, ...]
    default: str

    def candidates(self) -> List[str]:
        """Languages to try after the requested one, in order, without repeats."""
        ordered: List[str] = []
        for language in (*self.secondary, self.default):
            if language != self.language and language not in ordered:
                ordered.append(language)
        return ordered

    def to_dict(self) -> Dict[str, Any]:
        return {"secondary": list(self.secondary), "default": self.default}


class FallbackChains:
    """Validated set of fallback chains keyed by requested language.

    The keys are the supported languages. Every chain must avoid naming its
    own language as a secondary, may only reference supported languages, and
    must end at a supported default. Violations raise ConfigurationError.
    """

    def __init__(self, chains: Mapping[str, FallbackChain], default_language: str):
        self._chains: Dict[str, FallbackChain] = dict(chains)
        self.default_language = default_language
        self.validate()

    @classmethod
    def from_config(cls, raw: Mapping[str, Mapping[str, Any]], default_language: str) -> "FallbackChains":
        chains: Dict[str, FallbackChain] = {}
        for language, entry in raw.items():
            if not isinstance(entry, Mapping):
                raise ConfigurationError(
                    "Fallback chain must be a mapping with 'secondary' and 'default'",
                    {"language": language},
                )
            secondary = entry.get("secondary", [])
            if isinstance(secondary, str) or not all(isinstance(item, str) for item in secondary):
                raise ConfigurationError(
                    "Fallback chain 'secondary' must be a list of language codes",
                    {"language": language, "secondary": secondary},
                )
            default = entry.get("default", default_language)
            if not isinstance(default, str) or not default:
                raise ConfigurationError(
                    "Fallback chain 'default' must be a language code",
                    {"language": language, "default": default},
                )
            chains[language] = FallbackChain(language=language, secondary=tuple(secondary), default=default)
        return cls(chains, default_language)

    def validate(self) -> None:
        if not self._chains:
            raise ConfigurationError("At least one fallback chain must be configured")

        supported = set(self._chains)
        if self.default_language not in supported:
            raise ConfigurationError(
                "Default language has no fallback chain",
                {"default_language": self.default_language, "supported": sorted(supported)},
            )

        for language, chain in self._chains.items():
            if chain.language != language:
                raise ConfigurationError(
                    "Fallback chain is registered under the wrong language",
                    {"key": language, "chain_language": chain.language},
                )
            if language in chain.secondary:
                raise ConfigurationError(
                    "Fallback chain references its own language",
                    {"language": language, "secondary": list(chain.secondary)},
                )
            if len(set(chain.secondary)) != len(chain.secondary):
                raise ConfigurationError(
                    "Fallback chain lists a language twice",
                    {"language": language, "secondary": list(chain.secondary)},
                )
            unknown = [item for item in chain.secondary if item not in supported]
            if unknown:
                raise ConfigurationError(
                    "Fallback chain references unsupported languages",
                    {"language": language, "unknown": unknown},
                )
            if chain.default not in supported:
                raise ConfigurationError(
                    "Fallback chain default language is not supported",
                    {"language": language, "default": chain.default},
                )

    @property
    def languages(self) -> List[str]:
        return list(self._chains)

    def is_supported(self, language: str) -> bool:
        return language in self._chains

    def chain_for(self, language: str) -> FallbackChain:
        """Chain for a language; unknown languages borrow the default language's chain."""
        chain = self._chains.get(language)
        if chain is not None:
            return chain

        borrowed = self._chains[self.default_language]
        return FallbackChain(
            language=language,
            secondary=tuple(item for item in borrowed.secondary if item != language),
            default=borrowed.default,
        )

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {language: chain.to_dict() for language, chain in self._chains.items()}
