"""
Content caching package.

Provides the translation cache used by the content service, plus its
persistence, expiry sweeping, warmup and reporting.
"""

from .cache_store import CacheEntry, CacheStore, make_cache_key
from .persistence import PersistenceAdapter, create_snapshot_slot
from .stats import CacheStatsReporter
from .sweeper import ExpirySweeper

__all__ = [
    "CacheEntry",
    "CacheStore",
    "make_cache_key",
    "PersistenceAdapter",
    "create_snapshot_slot",
    "CacheStatsReporter",
    "ExpirySweeper",
]
