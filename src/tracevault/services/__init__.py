"""TraceVault Services Module.

Cache engine, named cache registry, bundle store and maintenance facade.
"""

from .bundle_store import AnalysisBundle, BundleStats, BundleStore
from .cache_engine import CacheEngine
from .cache_models import CacheConfig, CacheItem, CacheStats, CleanupResult, StoreResult
from .maintenance import CacheMaintenance, CacheTotals
from .named_caches import CacheRegistry, create_default_registry, default_cache_configs

__all__ = [
    "AnalysisBundle",
    "BundleStats",
    "BundleStore",
    "CacheConfig",
    "CacheEngine",
    "CacheItem",
    "CacheMaintenance",
    "CacheRegistry",
    "CacheStats",
    "CacheTotals",
    "CleanupResult",
    "StoreResult",
    "create_default_registry",
    "default_cache_configs",
]
