"""Statistics and maintenance across every named cache.

The facade only reads bundle statistics; clearing caches never touches the
bundle store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from tracevault.services.bundle_store import BundleStats, BundleStore
from tracevault.services.cache_models import CacheStats, CleanupResult
from tracevault.services.named_caches import CacheRegistry
from tracevault.shared.logging import log_operation_start

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheTotals:
    count: int = 0
    approx_byte_size: int = 0

    @property
    def size_kb(self) -> float:
        return round(self.approx_byte_size / 1024, 2)


class CacheMaintenance:
    """Aggregated statistics, sweeping and clearing for a registry.

    Args:
        registry: Named caches to operate on.
        bundle_store: Optional bundle store whose statistics are reported.
    """

    def __init__(self, registry: CacheRegistry, bundle_store: BundleStore | None = None) -> None:
        self.registry = registry
        self.bundle_store = bundle_store

    def stats(self) -> dict[str, CacheStats]:
        return {engine.name: engine.stats() for engine in self.registry}

    def bundle_stats(self) -> BundleStats | None:
        if self.bundle_store is None:
            return None
        return self.bundle_store.stats()

    def totals(self, stats: dict[str, CacheStats] | None = None) -> CacheTotals:
        """Sum counts and sizes over every cache (bundles excluded)."""
        stats = stats if stats is not None else self.stats()
        return CacheTotals(
            count=sum(s.count for s in stats.values()),
            approx_byte_size=sum(s.approx_byte_size for s in stats.values()),
        )

    def cleanup_all(self) -> dict[str, CleanupResult]:
        log_operation_start(logger, "cleanup_all", {"caches": self.registry.names()})
        results = {engine.name: engine.cleanup() for engine in self.registry}
        logger.info(
            "Cleanup removed %d entries across %d caches",
            sum(r.total_removed for r in results.values()),
            len(results),
        )
        return results

    def clear(self, name: str) -> int:
        """Clear one named cache.

        Raises:
            DomainError: CACHE_NOT_REGISTERED for an unknown name.
        """
        return self.registry.get(name).clear()

    def clear_all(self) -> dict[str, int]:
        return {engine.name: engine.clear() for engine in self.registry}

    def report(self) -> dict[str, Any]:
        """JSON-ready snapshot of every statistic."""
        stats = self.stats()
        totals = self.totals(stats)
        bundle_stats = self.bundle_stats()
        return {
            "caches": {name: s.to_dict() for name, s in stats.items()},
            "totals": {
                "count": totals.count,
                "approx_byte_size": totals.approx_byte_size,
                "size_kb": totals.size_kb,
            },
            "bundles": bundle_stats.to_dict() if bundle_stats is not None else None,
            "storage": {
                "used_bytes": self.registry.store.used_bytes(),
                "max_bytes": self.registry.store.max_bytes,
            },
        }
