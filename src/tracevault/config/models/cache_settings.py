"""Cache, bundle and storage configuration models.

This module contains the configuration models for the named caches, the
bundle store namespace and the durable storage backend.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from tracevault.shared.constants import (
    BundleConfig,
    ContractCacheConfig,
    SimulationCacheConfig,
    StorageConfig,
    TransactionCacheConfig,
)


class NamedCacheSettings(BaseModel):
    """Configuration of one named cache."""

    default_ttl_seconds: float = Field(..., gt=0, description="Default entry lifetime in seconds")
    max_entries: int = Field(..., gt=0, description="Entries kept after a cleanup sweep")
    key_prefix: str = Field(..., min_length=1, description="Storage key prefix")


class ContractCacheSettings(NamedCacheSettings):
    """Contract metadata cache. Fields omitted from a source keep their defaults."""

    default_ttl_seconds: float = Field(default=ContractCacheConfig.TTL, gt=0)
    max_entries: int = Field(default=ContractCacheConfig.MAX_ENTRIES, gt=0)
    key_prefix: str = Field(default=ContractCacheConfig.KEY_PREFIX, min_length=1)


class TransactionCacheSettings(NamedCacheSettings):
    """Transaction data cache."""

    default_ttl_seconds: float = Field(default=TransactionCacheConfig.TTL, gt=0)
    max_entries: int = Field(default=TransactionCacheConfig.MAX_ENTRIES, gt=0)
    key_prefix: str = Field(default=TransactionCacheConfig.KEY_PREFIX, min_length=1)


class SimulationCacheSettings(NamedCacheSettings):
    """Simulation result cache."""

    default_ttl_seconds: float = Field(default=SimulationCacheConfig.TTL, gt=0)
    max_entries: int = Field(default=SimulationCacheConfig.MAX_ENTRIES, gt=0)
    key_prefix: str = Field(default=SimulationCacheConfig.KEY_PREFIX, min_length=1)


class CacheSettings(BaseModel):
    """Configuration of the contract, transaction and simulation caches."""

    contract: ContractCacheSettings = Field(default_factory=ContractCacheSettings)
    transaction: TransactionCacheSettings = Field(default_factory=TransactionCacheSettings)
    simulation: SimulationCacheSettings = Field(default_factory=SimulationCacheSettings)


class BundleSettings(BaseModel):
    """Bundle store configuration."""

    key_prefix: str = Field(
        default=BundleConfig.KEY_PREFIX,
        min_length=1,
        description="Storage key prefix of analysis bundles",
    )


class StorageSettings(BaseModel):
    """Durable storage backend configuration.

    ``path`` defaults to ``~/.tracevault/store.db`` for the sqlite backend
    and is ignored by the memory backend.
    """

    backend: Literal["memory", "sqlite"] = Field(
        default=StorageConfig.DEFAULT_BACKEND,
        description="Storage backend (memory, sqlite)",
    )
    path: Path | None = Field(default=None, description="SQLite database file")
    max_bytes: int | None = Field(
        default=StorageConfig.DEFAULT_MAX_BYTES,
        gt=0,
        description="Quota over the summed size of stored keys and values",
    )

    def resolved_path(self) -> Path:
        if self.path is not None:
            return self.path.expanduser()
        return Path.home() / StorageConfig.HOME_DIR / StorageConfig.DB_FILENAME


__all__ = [
    "BundleSettings",
    "CacheSettings",
    "ContractCacheSettings",
    "NamedCacheSettings",
    "SimulationCacheSettings",
    "StorageSettings",
    "TransactionCacheSettings",
]
