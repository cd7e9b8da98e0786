"""TraceVault Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tracevault.config.models.app_settings import LoggingSettings
from tracevault.config.models.cache_settings import (
    BundleSettings,
    CacheSettings,
    StorageSettings,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings facade providing unified configuration access.

    Every field can be overridden from the environment, e.g.
    ``TRACEVAULT_STORAGE__BACKEND=memory`` or
    ``TRACEVAULT_CACHES__SIMULATION__MAX_ENTRIES=50``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACEVAULT_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    caches: CacheSettings = Field(default_factory=CacheSettings)
    bundles: BundleSettings = Field(default_factory=BundleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from a TOML file. Keys absent from the file fall back
        to the environment, then to defaults.
        """

        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        logger.debug("Loaded configuration from %s", file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file. Unset optional values are omitted."""

        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)
