"""
Completeness predicate deciding whether a bundle counts as "missing".
"""

from typing import Any, Iterable, Mapping, Optional, Tuple


DEFAULT_REQUIRED_FIELDS: Tuple[str, ...] = ("title", "content", "description", "name")


def is_blank(value: Any) -> bool:
    """None, whitespace-only strings and empty containers carry no content."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple, set)):
        return len(value) == 0
    return False


class CompletenessPredicate:
    """A bundle is missing when none of the required fields holds a non-blank value."""

    def __init__(self, required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS):
        self.required_fields = tuple(required_fields)

    def is_missing(self, bundle: Optional[Mapping[str, Any]]) -> bool:
        if bundle is None or not isinstance(bundle, Mapping):
            return True
        return not any(not is_blank(bundle.get(field)) for field in self.required_fields)

    def __call__(self, bundle: Optional[Mapping[str, Any]]) -> bool:
        return self.is_missing(bundle)


def is_content_missing(
    bundle: Optional[Mapping[str, Any]],
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
) -> bool:
    return CompletenessPredicate(required_fields).is_missing(bundle)
