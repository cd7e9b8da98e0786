"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe lazy singleton for the Settings instance
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from tracevault.config.models.settings import Settings
from tracevault.shared.constants import StorageConfig
from tracevault.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    create_config_error,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking to keep the common path lock-free.
    """

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance


def _load_env_file(env_file: Path = Path(".env")) -> None:
    """Load environment variables from ``env_file`` when it exists.

    Variables already set in the process environment win.

    Raises:
        InfrastructureError: If the file exists but cannot be read
    """
    if not env_file.exists():
        return

    try:
        load_dotenv(env_file, override=False)
    except OSError as e:
        raise InfrastructureError(
            code=ErrorCode.FILE_READ_ERROR,
            message=f"Failed to read .env file: {e}",
            context=ErrorContext(
                operation="load_env",
                additional_data={"file_name": env_file.name},
            ),
            original_error=e,
        ) from e


def default_config_paths() -> list[Path]:
    return [
        Path("config") / CONFIG_FILENAME,
        Path(CONFIG_FILENAME),
        Path.home() / StorageConfig.HOME_DIR / CONFIG_FILENAME,
    ]


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to a TOML file. If None, the first existing
            default location is used, falling back to environment variables.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
        DomainError: CONFIG_INVALID if the configuration fails validation
    """
    _load_env_file()

    try:
        if config_path:
            return Settings.from_toml_file(config_path)

        for candidate in default_config_paths():
            if candidate.exists():
                return Settings.from_toml_file(candidate)

        return Settings()
    except ValidationError as e:
        raise create_config_error(
            f"Invalid configuration: {e.error_count()} validation error(s)",
            config_key=str(config_path) if config_path else None,
            operation="load_settings",
            original_error=e,
        ) from e


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)


__all__ = [
    "SettingsLoader",
    "get_config",
    "load_settings",
    "reload_config",
]
