"""Cache record and configuration models.

``CacheItem`` is the self-describing JSON record persisted for every cache
entry. ``CacheConfig`` fixes the behavior and isolation boundary of one
``CacheEngine``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CacheItem(BaseModel):
    """Schema for persisted cache entries.

    Attributes:
        data: The cached value. Any JSON-serializable payload.
        created_at: UTC timestamp of the write.
        expires_at: UTC timestamp from which the entry is expired.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": {"name": "Vault", "address": "0xabc"},
                "created_at": "2024-01-01T00:00:00Z",
                "expires_at": "2024-01-02T00:00:00Z",
            },
        },
    )

    data: Any = Field(None, description="The cached data payload")
    created_at: datetime = Field(..., description="When the entry was written")
    expires_at: datetime = Field(..., description="When the entry stops being served")

    @field_validator("created_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_lifetime(self) -> CacheItem:
        if self.expires_at <= self.created_at:
            msg = "expires_at must be later than created_at"
            raise ValueError(msg)
        return self

    def is_expired(self, now: datetime) -> bool:
        """An entry is expired from its expiry instant onward."""
        return now >= self.expires_at


class CacheConfig(BaseModel):
    """Immutable configuration of one named cache.

    Attributes:
        name: Human-readable cache name, unique within a registry.
        default_ttl_seconds: Lifetime applied when ``put`` gets no usable TTL.
        max_entries: Upper bound on entries kept after a sweep.
        key_prefix: Storage key prefix owning this cache's namespace.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    default_ttl_seconds: float = Field(..., gt=0)
    max_entries: int = Field(..., gt=0)
    key_prefix: str = Field(..., min_length=1)


class StoreResult(str, Enum):
    """Outcome of a cache write. Writes never raise."""

    STORED = "stored"
    SKIPPED_FULL = "skipped_full"
    SKIPPED_DENIED = "skipped_denied"
    SKIPPED_UNSERIALIZABLE = "skipped_unserializable"
    SKIPPED_ERROR = "skipped_error"

    @property
    def stored(self) -> bool:
        return self is StoreResult.STORED


@dataclass(frozen=True)
class CleanupResult:
    """Counts from one ``cleanup`` sweep."""

    expired_removed: int = 0
    corrupted_removed: int = 0
    evicted: int = 0
    remaining: int = 0

    @property
    def total_removed(self) -> int:
        return self.expired_removed + self.corrupted_removed + self.evicted


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics for one cache.

    Attributes:
        count: Entries under the cache prefix, unparseable ones included
        approx_byte_size: Summed UTF-8 size of keys and serialized values
        oldest_entry_age: Age of the oldest parseable entry, None when empty
        oldest_key: Logical key of that entry
        hits: Lookups served from the cache since construction
        misses: Lookups that found nothing usable since construction
    """

    count: int = 0
    approx_byte_size: int = 0
    oldest_entry_age: timedelta | None = None
    oldest_key: str | None = None
    hits: int = 0
    misses: int = 0

    @property
    def size_kb(self) -> float:
        return round(self.approx_byte_size / 1024, 2)

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "approx_byte_size": self.approx_byte_size,
            "size_kb": self.size_kb,
            "oldest_entry_age_seconds": (
                self.oldest_entry_age.total_seconds()
                if self.oldest_entry_age is not None
                else None
            ),
            "oldest_key": self.oldest_key,
            "hits": self.hits,
            "misses": self.misses,
        }
