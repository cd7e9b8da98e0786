"""Configuration domain models."""

from __future__ import annotations

from .app_settings import LoggingSettings
from .cache_settings import (
    BundleSettings,
    CacheSettings,
    ContractCacheSettings,
    NamedCacheSettings,
    SimulationCacheSettings,
    StorageSettings,
    TransactionCacheSettings,
)

__all__ = [
    "BundleSettings",
    "CacheSettings",
    "ContractCacheSettings",
    "LoggingSettings",
    "NamedCacheSettings",
    "SimulationCacheSettings",
    "StorageSettings",
    "TransactionCacheSettings",
]
