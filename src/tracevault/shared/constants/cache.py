"""
Cache Configuration Constants

Centralized TTLs, capacities and key prefixes for the named caches and
the bundle store. Each cache configuration is tailored to the lifetime of
the data class it holds.
"""

# Base time units for TTL calculations (seconds)
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class BaseCacheConfig:
    """Base cache configuration with common settings."""

    DEFAULT_TTL = 30 * BASE_MINUTE
    DEFAULT_MAX_ENTRIES = 100
    DEFAULT_KEY_PREFIX = "tracevault_cache_"


class ContractCacheConfig(BaseCacheConfig):
    """Contract metadata: verified source and ABI rarely change."""

    NAME = "contract"
    TTL = BASE_DAY
    MAX_ENTRIES = 200
    KEY_PREFIX = "contract_cache_"


class TransactionCacheConfig(BaseCacheConfig):
    """Transaction data: immutable once mined."""

    NAME = "transaction"
    TTL = 7 * BASE_DAY
    MAX_ENTRIES = 50
    KEY_PREFIX = "tx_cache_"


class SimulationCacheConfig(BaseCacheConfig):
    """Simulation results: cheap to regenerate, volatile semantics."""

    NAME = "simulation"
    TTL = BASE_HOUR
    MAX_ENTRIES = 20
    KEY_PREFIX = "sim_cache_"


class ConvenienceTTL:
    """Fixed TTLs of the typed convenience operations."""

    CONTRACT_NAME = BASE_DAY
    TRANSACTION_TRACE = 7 * BASE_DAY
    SIMULATION_RESULT = BASE_HOUR


class ConvenienceKeys:
    """Logical key templates of the typed convenience operations."""

    CONTRACT_NAME = "contract_name_{address}"
    TRANSACTION_TRACE = "tx_trace_{tx_hash}"
    SIMULATION_RESULT = "simulation_{tx_hash}"


class BundleConfig:
    """Bundle store configuration."""

    KEY_PREFIX = "analysis_bundle_"
    ID_PREFIX = "bundle"
    ID_RANDOM_HEX_LENGTH = 9
    MAX_ID_ATTEMPTS = 8
    DESCRIPTION_TX_PREVIEW_LENGTH = 10


class StorageConfig:
    """Durable substrate defaults."""

    BACKEND_MEMORY = "memory"
    BACKEND_SQLITE = "sqlite"
    DEFAULT_BACKEND = BACKEND_SQLITE
    HOME_DIR = ".tracevault"
    DB_FILENAME = "store.db"
    # Typical browser local storage quota
    DEFAULT_MAX_BYTES = 5 * 1024 * 1024
    TABLE_NAME = "kv_store"


class CacheKeyConfig:
    """Request key derivation settings."""

    PARAMS_DIGEST_LENGTH = 16
    LOG_KEY_PREVIEW_LENGTH = 50
