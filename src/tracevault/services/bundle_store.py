"""Non-expiring store of complete analysis sessions.

An ``AnalysisBundle`` captures everything one analysis produced (the
primary result, the execution trace and the resolved contract names) as a
single record. Bundles have no TTL and no capacity bound: they are user data
and only ever removed by explicit deletion. Unlike cache writes, a failed
bundle write raises.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tracevault.services.cache_engine import Clock, utc_now
from tracevault.shared.constants import BundleConfig
from tracevault.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    StorageError,
)
from tracevault.shared.logging import log_operation_error, log_operation_success
from tracevault.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class AnalysisBundle(BaseModel):
    """One persisted analysis session.

    Attributes:
        id: ``bundle_<epoch-ms>_<random hex>``
        timestamp: When the bundle was saved
        source_transaction_id: Transaction the analysis was run for
        primary_result: Transaction/simulation data as returned by the API
        trace: Decoded execution trace
        resolved_names: ``(address, contract name)`` pairs
        description: Free text given at save time
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    timestamp: datetime
    source_transaction_id: str
    primary_result: Any = None
    trace: Any = None
    resolved_names: list[tuple[str, str]] = Field(default_factory=list)
    description: str | None = None

    @property
    def label(self) -> str:
        """Description, or a short label derived from the transaction id."""
        if self.description:
            return self.description
        preview = self.source_transaction_id[: BundleConfig.DESCRIPTION_TX_PREVIEW_LENGTH]
        return f"Analysis of {preview}..."


@dataclass(frozen=True)
class BundleStats:
    count: int = 0
    approx_total_byte_size: int = 0

    @property
    def size_kb(self) -> float:
        return round(self.approx_total_byte_size / 1024, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "approx_total_byte_size": self.approx_total_byte_size,
            "size_kb": self.size_kb,
        }


class BundleStore:
    """CRUD over ``AnalysisBundle`` records under one key prefix.

    Args:
        store: Durable substrate, usually shared with the named caches.
        key_prefix: Namespace of bundle records. Must not overlap any cache.
        clock: Returns the current time as an aware datetime.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = BundleConfig.KEY_PREFIX,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.key_prefix = key_prefix
        self._clock = clock or utc_now

    def _storage_key(self, bundle_id: str) -> str:
        return f"{self.key_prefix}{bundle_id}"

    def _new_id(self, timestamp: datetime) -> str:
        epoch_ms = int(timestamp.timestamp() * 1000)
        suffix = uuid.uuid4().hex[: BundleConfig.ID_RANDOM_HEX_LENGTH]
        return f"{BundleConfig.ID_PREFIX}_{epoch_ms}_{suffix}"

    def _allocate_id(self, timestamp: datetime) -> str:
        for _ in range(BundleConfig.MAX_ID_ATTEMPTS):
            bundle_id = self._new_id(timestamp)
            if self.store.get_raw(self._storage_key(bundle_id)) is None:
                return bundle_id
            logger.debug("Bundle id collision on %s, regenerating", bundle_id)

        raise DomainError(
            code=ErrorCode.BUNDLE_ID_EXHAUSTED,
            message=f"Could not allocate a free bundle id after {BundleConfig.MAX_ID_ATTEMPTS} attempts",
            context=ErrorContext(operation="bundle_save"),
        )

    def save(
        self,
        source_transaction_id: str,
        primary_result: Any,
        trace: Any,
        resolved_names: Iterable[tuple[str, str]],
        description: str | None = None,
    ) -> str:
        """Persist a new bundle and return its id.

        Raises:
            DomainError: BUNDLE_WRITE_FAILED if the bundle cannot be
                serialized, BUNDLE_ID_EXHAUSTED if no free id was found.
            StorageError: If the store refuses the write (full, denied or failing).
        """
        start = time.perf_counter()
        timestamp = self._clock()
        bundle_id = self._allocate_id(timestamp)
        context = ErrorContext(
            operation="bundle_save",
            additional_data={
                "bundle_id": bundle_id,
                "source_transaction_id": source_transaction_id,
            },
        )

        try:
            bundle = AnalysisBundle(
                id=bundle_id,
                timestamp=timestamp,
                source_transaction_id=source_transaction_id,
                primary_result=primary_result,
                trace=trace,
                resolved_names=list(resolved_names),
                description=description,
            )
            payload = bundle.model_dump_json()
        except (ValidationError, ValueError, TypeError) as e:
            error = DomainError(
                code=ErrorCode.BUNDLE_WRITE_FAILED,
                message=f"Failed to serialize bundle for transaction '{source_transaction_id}': {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error)
            raise error from e

        try:
            self.store.set_raw(self._storage_key(bundle_id), payload)
        except StorageError as e:
            log_operation_error(logger=logger, error=e, operation="bundle_save", context=context)
            raise

        log_operation_success(
            logger=logger,
            operation="bundle_save",
            duration_ms=(time.perf_counter() - start) * 1000,
            result_info={"bytes": len(payload)},
            context=context,
        )
        logger.info("Saved analysis bundle %s (%s)", bundle_id, bundle.label)
        return bundle_id

    def _parse(self, storage_key: str, raw: str) -> AnalysisBundle | None:
        try:
            return AnalysisBundle.model_validate_json(raw)
        except ValidationError as e:
            error = DomainError(
                code=ErrorCode.BUNDLE_CORRUPTED,
                message=f"Skipping corrupted bundle record '{storage_key}'",
                context=ErrorContext(
                    operation="bundle_load",
                    additional_data={"key": storage_key, "size": len(raw)},
                ),
                original_error=e,
            )
            log_operation_error(logger=logger, error=error, level=logging.WARNING)
            return None

    def load(self, bundle_id: str) -> AnalysisBundle | None:
        """Return the bundle, or None when absent or unreadable.

        Corrupted records are logged and left in place.
        """
        storage_key = self._storage_key(bundle_id)
        raw = self.store.get_raw(storage_key)
        if raw is None:
            logger.debug("Bundle %s not found", bundle_id)
            return None
        return self._parse(storage_key, raw)

    def list_all(self) -> list[AnalysisBundle]:
        """Every readable bundle, newest first."""
        bundles: list[AnalysisBundle] = []
        for storage_key in self.store.list_keys(self.key_prefix):
            raw = self.store.get_raw(storage_key)
            if raw is None:
                continue
            bundle = self._parse(storage_key, raw)
            if bundle is not None:
                bundles.append(bundle)

        bundles.sort(key=lambda b: (b.timestamp, b.id), reverse=True)
        return bundles

    def delete(self, bundle_id: str) -> bool:
        storage_key = self._storage_key(bundle_id)
        if self.store.get_raw(storage_key) is None:
            return False
        self.store.remove_raw(storage_key)
        logger.info("Deleted analysis bundle %s", bundle_id)
        return True

    def delete_all(self) -> int:
        keys = self.store.list_keys(self.key_prefix)
        for storage_key in keys:
            self.store.remove_raw(storage_key)
        logger.info("Deleted %d analysis bundles", len(keys))
        return len(keys)

    def stats(self) -> BundleStats:
        count = 0
        total_bytes = 0
        for storage_key in self.store.list_keys(self.key_prefix):
            raw = self.store.get_raw(storage_key)
            if raw is None:
                continue
            count += 1
            total_bytes += self.store.size_of(storage_key, raw)
        return BundleStats(count=count, approx_total_byte_size=total_bytes)
