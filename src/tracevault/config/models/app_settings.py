"""Logging configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from tracevault.shared.constants import LogConfig

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingSettings(BaseModel):
    """Logging configuration.

    Console output goes through rich; ``file`` adds a JSON-lines log file.
    """

    level: str = Field(default=LogConfig.DEFAULT_LEVEL, description="Logging level")
    file: str | None = Field(default=LogConfig.DEFAULT_FILE_PATH, description="Log file path")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVELS:
            msg = f"Invalid log level '{value}'. Expected one of: {', '.join(_LEVELS)}"
            raise ValueError(msg)
        return level


__all__ = ["LoggingSettings"]
