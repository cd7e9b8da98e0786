"""Size- and time-bounded cache engine over a durable key/value store.

One ``CacheEngine`` owns every storage key starting with its configured
prefix. Entries are ``CacheItem`` records serialized to JSON; expiry is
checked lazily on read and eagerly by ``cleanup``, which also evicts the
oldest-created entries once the instance holds more than ``max_entries``.

Writes never raise: a full, read-only or failing store degrades the cache
into a pass-through and the outcome is reported as a ``StoreResult``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from pydantic import ValidationError

from tracevault.services.cache_models import (
    CacheConfig,
    CacheItem,
    CacheStats,
    CleanupResult,
    StoreResult,
)
from tracevault.shared.constants import ConvenienceKeys, ConvenienceTTL
from tracevault.shared.errors import (
    ApplicationError,
    DomainError,
    ErrorCode,
    ErrorContext,
    StorageDeniedError,
    StorageError,
    StorageFullError,
    shorten_key,
)
from tracevault.shared.logging import log_operation_error, log_operation_success
from tracevault.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

# Distinguishes "no usable entry" from a cached None
_MISSING: Any = object()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheEngine:
    """TTL cache with creation-order capacity eviction.

    Args:
        config: Name, default TTL, capacity and key prefix of this cache.
        store: Durable substrate shared with other caches and the bundle store.
        clock: Returns the current time as an aware datetime. Defaults to UTC now.

    Example:
        >>> engine = CacheEngine(CacheConfig(name="contract", default_ttl_seconds=86400,
        ...                                  max_entries=200, key_prefix="contract_cache_"),
        ...                      MemoryKeyValueStore())
        >>> engine.put("0xabc", {"name": "Vault"})
        <StoreResult.STORED: 'stored'>
        >>> engine.get("0xabc")
        {'name': 'Vault'}
    """

    def __init__(
        self,
        config: CacheConfig,
        store: KeyValueStore,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self._clock = clock or utc_now
        # Serializes write-then-sweep and sweep-then-delete within this prefix
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def __repr__(self) -> str:
        return f"CacheEngine(name={self.config.name!r}, prefix={self.config.key_prefix!r})"

    @property
    def name(self) -> str:
        return self.config.name

    def storage_key(self, key: str) -> str:
        """Map a logical key onto this cache's storage namespace."""
        return f"{self.config.key_prefix}{key}"

    def _logical_key(self, storage_key: str) -> str:
        return storage_key[len(self.config.key_prefix) :]

    def _resolve_ttl(self, ttl_seconds: float | None) -> float:
        if ttl_seconds is None or ttl_seconds <= 0:
            return self.config.default_ttl_seconds
        return ttl_seconds

    @staticmethod
    def _parse(raw: str) -> CacheItem | None:
        try:
            return CacheItem.model_validate_json(raw)
        except ValidationError:
            return None

    def _write_reclaiming(self, storage_key: str, payload: str) -> None:
        """Write ``payload``; on a full store sweep this cache once and retry.

        Raises:
            StorageFullError: If the sweep freed nothing or the retry is refused.
        """
        try:
            self.store.set_raw(storage_key, payload)
        except StorageFullError:
            if not self._sweep().total_removed:
                raise
            logger.debug("Store full, retrying write to %s after sweep", shorten_key(storage_key))
            self.store.set_raw(storage_key, payload)

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> StoreResult:
        """Store ``value`` under ``key`` and sweep the cache.

        Args:
            key: Logical key, unique within this cache.
            value: Any JSON-serializable payload, ``None`` included.
            ttl_seconds: Entry lifetime. ``None`` or non-positive uses the default.

        Returns:
            ``StoreResult.STORED`` on success, otherwise the ``SKIPPED_*``
            reason. The previous value at ``key``, if any, is left untouched
            when the write is skipped.
        """
        start = time.perf_counter()
        storage_key = self.storage_key(key)
        ttl = self._resolve_ttl(ttl_seconds)
        context = ErrorContext(
            operation="cache_put",
            additional_data={
                "cache": self.config.name,
                "key": shorten_key(key),
                "ttl_seconds": ttl,
            },
        )

        now = self._clock()
        try:
            payload = CacheItem(
                data=value,
                created_at=now,
                expires_at=now + timedelta(seconds=ttl),
            ).model_dump_json()
        except (ValueError, TypeError) as e:
            error = DomainError(
                code=ErrorCode.CACHE_SERIALIZATION_ERROR,
                message=f"Failed to serialize cache data for key '{shorten_key(key)}': {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error, level=logging.WARNING)
            return StoreResult.SKIPPED_UNSERIALIZABLE

        with self._lock:
            try:
                self._write_reclaiming(storage_key, payload)
            except StorageFullError as e:
                log_operation_error(
                    logger=logger,
                    error=e,
                    operation="cache_put",
                    context=context,
                    level=logging.WARNING,
                )
                return StoreResult.SKIPPED_FULL
            except StorageDeniedError as e:
                log_operation_error(
                    logger=logger,
                    error=e,
                    operation="cache_put",
                    context=context,
                    level=logging.WARNING,
                )
                return StoreResult.SKIPPED_DENIED
            except StorageError as e:
                log_operation_error(
                    logger=logger,
                    error=e,
                    operation="cache_put",
                    context=context,
                    level=logging.WARNING,
                )
                return StoreResult.SKIPPED_ERROR

            self._sweep(newest_key=storage_key)

        log_operation_success(
            logger=logger,
            operation="cache_put",
            duration_ms=(time.perf_counter() - start) * 1000,
            result_info={"bytes": len(payload)},
            context=context,
        )
        return StoreResult.STORED

    def _lookup(self, key: str) -> Any:
        """Return the live value at ``key`` or ``_MISSING``, reaping dead entries."""
        storage_key = self.storage_key(key)
        context = ErrorContext(
            operation="cache_get",
            additional_data={"cache": self.config.name, "key": shorten_key(key)},
        )

        with self._lock:
            try:
                raw = self.store.get_raw(storage_key)
            except StorageError as e:
                log_operation_error(
                    logger=logger,
                    error=e,
                    operation="cache_get",
                    context=context,
                    level=logging.WARNING,
                )
                self._misses += 1
                return _MISSING

            if raw is None:
                logger.debug("Cache miss for key '%s' in %s", shorten_key(key), self.config.name)
                self._misses += 1
                return _MISSING

            item = self._parse(raw)
            if item is None:
                error = DomainError(
                    code=ErrorCode.CACHE_CORRUPTED,
                    message=f"Cache entry corrupted for key '{shorten_key(key)}', removing it",
                    context=context,
                )
                log_operation_error(logger=logger, error=error, level=logging.WARNING)
                self._remove_quietly(storage_key)
                self._misses += 1
                return _MISSING

            if item.is_expired(self._clock()):
                logger.debug("Cache entry expired for key '%s' in %s", shorten_key(key), self.config.name)
                self._remove_quietly(storage_key)
                self._misses += 1
                return _MISSING

            self._hits += 1
            return item.data

    def _remove_quietly(self, storage_key: str) -> bool:
        try:
            self.store.remove_raw(storage_key)
        except StorageError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="cache_remove",
                level=logging.WARNING,
            )
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value at ``key``, or ``default`` when absent.

        Expired and unparseable entries are removed as a side effect. Storage
        read failures are logged and reported as a miss.
        """
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether an entry was present."""
        storage_key = self.storage_key(key)
        with self._lock:
            existed = self.store.get_raw(storage_key) is not None
            self.store.remove_raw(storage_key)
        return existed

    def clear(self) -> int:
        """Remove every entry of this cache and nothing else."""
        with self._lock:
            keys = self.store.list_keys(self.config.key_prefix)
            for storage_key in keys:
                self.store.remove_raw(storage_key)

        logger.info("Cleared %d entries from cache '%s'", len(keys), self.config.name)
        return len(keys)

    def cleanup(self) -> CleanupResult:
        """Sweep expired and unparseable entries, then enforce capacity.

        Eviction removes entries in ascending ``created_at`` order (ties
        broken by storage key) until exactly ``max_entries`` remain. Reads
        never refresh an entry's position.
        """
        return self._sweep()

    def _sweep(self, newest_key: str | None = None) -> CleanupResult:
        """``cleanup`` body. ``newest_key`` sorts after entries sharing its
        ``created_at`` so a write is never evicted by its own sweep.
        """
        start = time.perf_counter()
        expired = corrupted = evicted = 0
        live: list[tuple[datetime, bool, str]] = []

        with self._lock:
            try:
                keys = self.store.list_keys(self.config.key_prefix)
            except StorageError as e:
                log_operation_error(
                    logger=logger,
                    error=e,
                    operation="cache_cleanup",
                    level=logging.WARNING,
                )
                return CleanupResult()

            now = self._clock()
            for storage_key in keys:
                try:
                    raw = self.store.get_raw(storage_key)
                except StorageError as e:
                    log_operation_error(
                        logger=logger,
                        error=e,
                        operation="cache_cleanup",
                        level=logging.WARNING,
                    )
                    continue
                if raw is None:
                    continue

                item = self._parse(raw)
                if item is None:
                    if self._remove_quietly(storage_key):
                        corrupted += 1
                elif item.is_expired(now):
                    if self._remove_quietly(storage_key):
                        expired += 1
                else:
                    live.append((item.created_at, storage_key == newest_key, storage_key))

            overflow = len(live) - self.config.max_entries
            if overflow > 0:
                live.sort()
                for _, _, storage_key in live[:overflow]:
                    if self._remove_quietly(storage_key):
                        evicted += 1

        result = CleanupResult(
            expired_removed=expired,
            corrupted_removed=corrupted,
            evicted=evicted,
            remaining=len(live) - evicted,
        )
        if result.total_removed:
            log_operation_success(
                logger=logger,
                operation="cache_cleanup",
                duration_ms=(time.perf_counter() - start) * 1000,
                result_info={
                    "cache": self.config.name,
                    "expired_removed": expired,
                    "corrupted_removed": corrupted,
                    "evicted": evicted,
                },
            )
        return result

    def stats(self) -> CacheStats:
        """Read-only statistics. Nothing is removed."""
        count = 0
        total_bytes = 0
        oldest: tuple[datetime, str] | None = None

        with self._lock:
            for storage_key in self.store.list_keys(self.config.key_prefix):
                raw = self.store.get_raw(storage_key)
                if raw is None:
                    continue
                count += 1
                total_bytes += self.store.size_of(storage_key, raw)
                item = self._parse(raw)
                if item is not None and (oldest is None or (item.created_at, storage_key) < oldest):
                    oldest = (item.created_at, storage_key)
            hits, misses = self._hits, self._misses

        if oldest is None:
            return CacheStats(count=count, approx_byte_size=total_bytes, hits=hits, misses=misses)

        return CacheStats(
            count=count,
            approx_byte_size=total_bytes,
            oldest_entry_age=max(self._clock() - oldest[0], timedelta(0)),
            oldest_key=self._logical_key(oldest[1]),
            hits=hits,
            misses=misses,
        )

    async def cached_call(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> T:
        """Read-through lookup.

        On a hit the cached value is returned and ``producer`` is not
        invoked. On a miss ``producer`` is awaited; its result is stored and
        returned. A failing producer propagates its exception unchanged and
        nothing is cached.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            return value  # type: ignore[no-any-return]

        start = time.perf_counter()
        try:
            # Awaited outside the engine lock
            value = await producer()
        except Exception as e:
            error = ApplicationError(
                code=ErrorCode.CACHE_ERROR,
                message=f"Producer failed for key '{shorten_key(key)}' in cache '{self.config.name}'",
                context=ErrorContext(
                    operation="cached_call",
                    additional_data={"cache": self.config.name, "key": shorten_key(key)},
                ),
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            raise

        self.put(key, value, ttl_seconds)
        log_operation_success(
            logger=logger,
            operation="cached_call",
            duration_ms=(time.perf_counter() - start) * 1000,
            context={"cache": self.config.name, "key": shorten_key(key)},
        )
        return value

    # Typed conveniences. Identifiers are case-insensitive hex strings.

    def cache_contract_name(self, address: str, name: str) -> StoreResult:
        return self.put(
            ConvenienceKeys.CONTRACT_NAME.format(address=address.lower()),
            name,
            ConvenienceTTL.CONTRACT_NAME,
        )

    def get_cached_contract_name(self, address: str) -> str | None:
        return self.get(ConvenienceKeys.CONTRACT_NAME.format(address=address.lower()))  # type: ignore[no-any-return]

    def cache_transaction_trace(self, tx_hash: str, trace: Any) -> StoreResult:
        return self.put(
            ConvenienceKeys.TRANSACTION_TRACE.format(tx_hash=tx_hash.lower()),
            trace,
            ConvenienceTTL.TRANSACTION_TRACE,
        )

    def get_cached_transaction_trace(self, tx_hash: str) -> Any:
        return self.get(ConvenienceKeys.TRANSACTION_TRACE.format(tx_hash=tx_hash.lower()))

    def cache_simulation_result(self, tx_hash: str, result: Any) -> StoreResult:
        return self.put(
            ConvenienceKeys.SIMULATION_RESULT.format(tx_hash=tx_hash.lower()),
            result,
            ConvenienceTTL.SIMULATION_RESULT,
        )

    def get_cached_simulation_result(self, tx_hash: str) -> Any:
        return self.get(ConvenienceKeys.SIMULATION_RESULT.format(tx_hash=tx_hash.lower()))
