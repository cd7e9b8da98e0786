"""Named cache instances sharing one durable store.

The registry hands out one ``CacheEngine`` per ``CacheConfig`` and refuses
any configuration whose key prefix could collide with another namespace:
equal prefixes, or one prefix being a prefix of the other, would let one
instance enumerate (and sweep) the other's keys.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from tracevault.services.cache_engine import CacheEngine, Clock
from tracevault.services.cache_models import CacheConfig
from tracevault.shared.constants import (
    BundleConfig,
    ContractCacheConfig,
    SimulationCacheConfig,
    TransactionCacheConfig,
)
from tracevault.shared.errors import DomainError, ErrorCode, ErrorContext, create_config_error
from tracevault.storage.base import KeyValueStore

if TYPE_CHECKING:
    from tracevault.config.models.settings import Settings

logger = logging.getLogger(__name__)


def prefixes_overlap(first: str, second: str) -> bool:
    """True when either prefix is a prefix of (or equal to) the other."""
    return first.startswith(second) or second.startswith(first)


class CacheRegistry:
    """Owns the named ``CacheEngine`` instances of one store.

    Args:
        store: Durable substrate every engine writes through.
        reserved_prefixes: Prefixes owned by non-cache components (the
            bundle store). No cache may overlap them.
        clock: Clock passed to every engine.
    """

    def __init__(
        self,
        store: KeyValueStore,
        reserved_prefixes: Iterable[str] = (),
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.reserved_prefixes = tuple(reserved_prefixes)
        self._clock = clock
        self._engines: dict[str, CacheEngine] = {}

    def register(self, config: CacheConfig) -> CacheEngine:
        """Create and register the engine for ``config``.

        Raises:
            DomainError: CONFIG_INVALID if the name is taken or the prefix
                overlaps a registered or reserved prefix.
        """
        if config.name in self._engines:
            raise create_config_error(
                f"Cache '{config.name}' is already registered",
                config_key=config.name,
                operation="register_cache",
            )

        owners = [(engine.config.key_prefix, name) for name, engine in self._engines.items()]
        owners += [(prefix, "reserved") for prefix in self.reserved_prefixes]
        for prefix, owner in owners:
            if prefixes_overlap(config.key_prefix, prefix):
                raise create_config_error(
                    f"Key prefix '{config.key_prefix}' of cache '{config.name}' "
                    f"overlaps prefix '{prefix}' ({owner})",
                    config_key=config.name,
                    operation="register_cache",
                )

        engine = CacheEngine(config, self.store, clock=self._clock)
        self._engines[config.name] = engine
        logger.debug(
            "Registered cache '%s' (prefix=%s, ttl=%ss, max_entries=%d)",
            config.name,
            config.key_prefix,
            config.default_ttl_seconds,
            config.max_entries,
        )
        return engine

    def get(self, name: str) -> CacheEngine:
        try:
            return self._engines[name]
        except KeyError as e:
            raise DomainError(
                code=ErrorCode.CACHE_NOT_REGISTERED,
                message=f"No cache named '{name}'. Known caches: {', '.join(self.names()) or 'none'}",
                context=ErrorContext(
                    operation="get_cache",
                    additional_data={"name": name},
                ),
                original_error=e,
            ) from e

    def names(self) -> list[str]:
        return list(self._engines)

    def __contains__(self, name: object) -> bool:
        return name in self._engines

    def __iter__(self) -> Iterator[CacheEngine]:
        return iter(list(self._engines.values()))

    def __len__(self) -> int:
        return len(self._engines)

    @property
    def contract(self) -> CacheEngine:
        return self.get(ContractCacheConfig.NAME)

    @property
    def transaction(self) -> CacheEngine:
        return self.get(TransactionCacheConfig.NAME)

    @property
    def simulation(self) -> CacheEngine:
        return self.get(SimulationCacheConfig.NAME)


def default_cache_configs(settings: Settings | None = None) -> list[CacheConfig]:
    """Build the contract, transaction and simulation configs.

    Values come from ``settings.caches`` when given, otherwise from the
    built-in defaults.
    """
    if settings is not None:
        caches = settings.caches
        return [
            CacheConfig(name=name, **section.model_dump())
            for name, section in (
                (ContractCacheConfig.NAME, caches.contract),
                (TransactionCacheConfig.NAME, caches.transaction),
                (SimulationCacheConfig.NAME, caches.simulation),
            )
        ]

    return [
        CacheConfig(
            name=defaults.NAME,
            default_ttl_seconds=defaults.TTL,
            max_entries=defaults.MAX_ENTRIES,
            key_prefix=defaults.KEY_PREFIX,
        )
        for defaults in (ContractCacheConfig, TransactionCacheConfig, SimulationCacheConfig)
    ]


def create_default_registry(
    store: KeyValueStore,
    settings: Settings | None = None,
    bundle_prefix: str = BundleConfig.KEY_PREFIX,
    clock: Clock | None = None,
) -> CacheRegistry:
    """Registry holding the three named caches, with the bundle prefix reserved."""
    if settings is not None:
        bundle_prefix = settings.bundles.key_prefix
    registry = CacheRegistry(store, reserved_prefixes=(bundle_prefix,), clock=clock)
    for config in default_cache_configs(settings):
        registry.register(config)
    return registry
