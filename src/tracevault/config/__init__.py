"""TraceVault Configuration Module

This module provides unified access to configuration models and settings
management:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: storage, cache, bundle and logging settings
"""

from __future__ import annotations

from .loader import SettingsLoader, get_config, load_settings, reload_config
from .models import (
    BundleSettings,
    CacheSettings,
    ContractCacheSettings,
    LoggingSettings,
    NamedCacheSettings,
    SimulationCacheSettings,
    StorageSettings,
    TransactionCacheSettings,
)
from .models.settings import Settings

__all__ = [
    "BundleSettings",
    "CacheSettings",
    "ContractCacheSettings",
    "LoggingSettings",
    "NamedCacheSettings",
    "Settings",
    "SettingsLoader",
    "SimulationCacheSettings",
    "StorageSettings",
    "TransactionCacheSettings",
    "get_config",
    "load_settings",
    "reload_config",
]
