"""
Fallback resolution for partially translated content.

Stateless: the resolver and merger only operate on the bundles handed to
them and never own cache entries.
"""

from .chains import FallbackChain, FallbackChains
from .completeness import CompletenessPredicate, is_content_missing
from .merger import MergedBundle, merge_content
from .resolver import FallbackResolver, ResolvedContent

__all__ = [
    "FallbackChain",
    "FallbackChains",
    "CompletenessPredicate",
    "is_content_missing",
    "MergedBundle",
    "merge_content",
    "FallbackResolver",
    "ResolvedContent",
]
