"""
Regional preferences per language and request language negotiation.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel


class LanguagePreference(BaseModel):
    """Regional formatting defaults attached to a language."""

    language: str
    region: Optional[str] = None
    date_format: Optional[str] = None
    number_format: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None


DEFAULT_PREFERENCES: Dict[str, LanguagePreference] = {
    "vi": LanguagePreference(
        language="vi",
        region="VN",
        date_format="dd/MM/yyyy",
        number_format="vi-VN",
        currency="VND",
        timezone="Asia/Ho_Chi_Minh",
    ),
    "en": LanguagePreference(
        language="en",
        region="US",
        date_format="MM/dd/yyyy",
        number_format="en-US",
        currency="USD",
        timezone="America/New_York",
    ),
    "tr": LanguagePreference(
        language="tr",
        region="TR",
        date_format="dd.MM.yyyy",
        number_format="tr-TR",
        currency="TRY",
        timezone="Europe/Istanbul",
    ),
}


def preference_for(language: str, default_language: str = "vi") -> LanguagePreference:
    """Preferences for a language, borrowing the default language's regional settings when unknown."""
    preference = DEFAULT_PREFERENCES.get(language)
    if preference is not None:
        return preference
    fallback = DEFAULT_PREFERENCES.get(default_language)
    if fallback is None:
        return LanguagePreference(language=language)
    return fallback.model_copy(update={"language": language})


def parse_accept_language(header: Optional[str]) -> List[str]:
    """Primary language tags from an Accept-Language header, best quality first."""
    if not header:
        return []

    weighted: List[Tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        pieces = part.strip().split(";")
        tag = pieces[0].strip().lower()
        if not tag or tag == "*":
            continue

        quality = 1.0
        for param in pieces[1:]:
            name, _, value = param.strip().partition("=")
            if name.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue

        weighted.append((-quality, position, tag.split("-")[0]))

    languages: List[str] = []
    for _, _, language in sorted(weighted):
        if language not in languages:
            languages.append(language)
    return languages


def negotiate_language(
    requested: Optional[str],
    accept_language: Optional[str],
    supported: Sequence[str],
    default: str,
) -> str:
    """
    Pick the language to serve.

    An explicit request wins even when unsupported, so that the resolver can
    fall back from it. Otherwise the best supported Accept-Language entry is
    used, then the default.
    """
    if requested:
        return requested.strip().lower()

    for language in parse_accept_language(accept_language):
        if language in supported:
            return language

    return default
