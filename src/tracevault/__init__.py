"""
TraceVault - Persistent Cache Substrate for Transaction Replay

Size- and time-bounded key/value caching partitioned into named caches,
plus a non-expiring store for complete analysis bundles.
"""

__version__ = "0.1.0"
__author__ = "TraceVault Team"
__email__ = "contact@tracevault.dev"

from .services import (
    AnalysisBundle,
    BundleStore,
    CacheConfig,
    CacheEngine,
    CacheMaintenance,
    CacheRegistry,
    StoreResult,
    create_default_registry,
)
from .storage import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore

__all__ = [
    "AnalysisBundle",
    "BundleStore",
    "CacheConfig",
    "CacheEngine",
    "CacheMaintenance",
    "CacheRegistry",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "StoreResult",
    "create_default_registry",
]
