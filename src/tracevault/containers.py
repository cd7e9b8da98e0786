"""Dependency Injection container for TraceVault.

This module provides a centralized DI container using dependency-injector
so that every long-lived component is constructed explicitly, once, from
the loaded settings.

The container manages:
- Settings (Singleton)
- Durable store (memory or SQLite, selected by ``storage.backend``)
- Named cache registry
- Bundle store
- Maintenance facade
"""

from __future__ import annotations

from dependency_injector import containers, providers

from tracevault.config.loader import load_settings
from tracevault.services import BundleStore, CacheMaintenance, create_default_registry
from tracevault.storage import MemoryKeyValueStore, SQLiteKeyValueStore


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for TraceVault services.

    Example:
        >>> container = Container()
        >>> maintenance = container.maintenance()
        >>> maintenance.cleanup_all()
        >>> container.store().close()

    Tests override ``config`` (or ``store``) before resolving anything:
        >>> container.config.override(providers.Object(Settings(storage={"backend": "memory"})))
    """

    # Configuration
    config = providers.Singleton(load_settings)

    # Durable substrate
    store = providers.Selector(
        providers.Callable(lambda config: config.storage.backend, config=config),
        memory=providers.Singleton(
            MemoryKeyValueStore,
            max_bytes=providers.Callable(lambda config: config.storage.max_bytes, config=config),
        ),
        sqlite=providers.Singleton(
            SQLiteKeyValueStore,
            db_path=providers.Callable(lambda config: config.storage.resolved_path(), config=config),
            max_bytes=providers.Callable(lambda config: config.storage.max_bytes, config=config),
        ),
    )

    # Caches and bundles
    registry = providers.Singleton(
        create_default_registry,
        store=store,
        settings=config,
    )

    bundle_store = providers.Singleton(
        BundleStore,
        store=store,
        key_prefix=providers.Callable(lambda config: config.bundles.key_prefix, config=config),
    )

    maintenance = providers.Singleton(
        CacheMaintenance,
        registry=registry,
        bundle_store=bundle_store,
    )
