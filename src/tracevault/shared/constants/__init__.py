"""
TraceVault Constants Module

Centralized constants for TraceVault. All magic values and configuration
constants are defined here to keep a single source of truth.
"""

from .cache import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MINUTE,
    BASE_SECOND,
    BaseCacheConfig,
    BundleConfig,
    CacheKeyConfig,
    ContractCacheConfig,
    ConvenienceKeys,
    ConvenienceTTL,
    SimulationCacheConfig,
    StorageConfig,
    TransactionCacheConfig,
)
from .cli import CLIDefaults, CLIHelp, LogConfig

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "BaseCacheConfig",
    "BundleConfig",
    "CLIDefaults",
    "CLIHelp",
    "CacheKeyConfig",
    "ContractCacheConfig",
    "ConvenienceKeys",
    "ConvenienceTTL",
    "LogConfig",
    "SimulationCacheConfig",
    "StorageConfig",
    "TransactionCacheConfig",
]
