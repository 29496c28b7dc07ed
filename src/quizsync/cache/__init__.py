"""Local cache for question pools.

Key components:
- LocalCacheStore: Per-name durable bytes
- CacheMetadata: Entry bookkeeping and sync statistics
- SyncConfig: Configuration management
- compare_counts: Count-based staleness check
"""

from quizsync.cache.config import SyncConfig, get_global_config, set_global_config
from quizsync.cache.metadata import CacheEntry, CacheMetadata
from quizsync.cache.store import LocalCacheStore
from quizsync.cache.validation import Staleness, compare_counts

__all__ = [
    "LocalCacheStore",
    "CacheMetadata",
    "CacheEntry",
    "SyncConfig",
    "get_global_config",
    "set_global_config",
    "Staleness",
    "compare_counts",
]
