"""
Field-level merge of a partially translated bundle with a fallback bundle.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .completeness import is_blank


DEFAULT_MERGE_FIELDS: Tuple[str, ...] = ("title", "content", "description", "name", "excerpt")


@dataclass(frozen=True)
class MergedBundle:
    """Merge result with provenance of every substituted field."""

    data: Dict[str, Any]
    used_fallback_language: Optional[str] = None
    substituted_fields: Tuple[str, ...] = ()
    primary_language: Optional[str] = None

    @property
    def field_languages(self) -> Dict[str, Optional[str]]:
        return {field: self.used_fallback_language for field in self.substituted_fields}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "language": self.primary_language,
            "used_fallback_language": self.used_fallback_language,
            "field_languages": self.field_languages,
        }


def merge_content(
    primary: Optional[Mapping[str, Any]],
    fallback: Optional[Mapping[str, Any]],
    merge_fields: Iterable[str] = DEFAULT_MERGE_FIELDS,
    primary_language: Optional[str] = None,
    fallback_language: Optional[str] = None,
) -> Optional[MergedBundle]:
    """Complete blank merge fields of ``primary`` from ``fallback``.

    Fields outside ``merge_fields`` always come from ``primary``. A fallback
    value is only substituted when it is itself non-blank. With one side
    absent the other is returned as-is; with both absent, None.
    """
    if primary is None and fallback is None:
        return None

    if primary is None:
        fields = tuple(field for field in merge_fields if not is_blank(fallback.get(field)))
        return MergedBundle(
            data=dict(fallback),
            used_fallback_language=fallback_language,
            substituted_fields=fields,
            primary_language=primary_language,
        )

    if fallback is None:
        return MergedBundle(data=dict(primary), primary_language=primary_language)

    merged = dict(primary)
    substituted = []
    for field in merge_fields:
        if is_blank(primary.get(field)) and not is_blank(fallback.get(field)):
            merged[field] = fallback[field]
            substituted.append(field)

    return MergedBundle(
        data=merged,
        used_fallback_language=fallback_language if substituted else None,
        substituted_fields=tuple(substituted),
        primary_language=primary_language,
    )
