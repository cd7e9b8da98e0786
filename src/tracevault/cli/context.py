"""
CLI Context Management Module

Global CLI state shared by every Typer command: the parsed common options
and the dependency container built from them.
"""

from __future__ import annotations

import contextvars
from collections.abc import Generator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from dependency_injector import providers
from pydantic import BaseModel, ConfigDict, Field

from tracevault.config.loader import load_settings
from tracevault.config.models.settings import Settings
from tracevault.containers import Container
from tracevault.shared.logging import ROOT_LOGGER_NAME, setup_structured_logger


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CliContext(BaseModel):
    """
    CLI context model for managing global state.

    Attributes:
        config_path: TOML file given with ``--config``, if any
        log_level: Level from ``--log-level``; None defers to the settings
    """

    model_config = ConfigDict(frozen=True)

    config_path: Path | None = Field(default=None, description="Configuration file")
    log_level: LogLevel | None = Field(default=None, description="Logging level override")


_cli_context: contextvars.ContextVar[CliContext | None] = contextvars.ContextVar(
    "cli_context",
    default=None,
)


def get_cli_context() -> CliContext:
    context = _cli_context.get()
    if context is None:
        context = CliContext()
        _cli_context.set(context)
    return context


def set_cli_context(context: CliContext) -> None:
    _cli_context.set(context)


def build_container(context: CliContext | None = None) -> Container:
    """Container whose settings come from ``--config`` or the default lookup."""
    context = context or get_cli_context()
    container = Container()
    if context.config_path is not None:
        container.config.override(providers.Object(load_settings(context.config_path)))
    return container


@contextmanager
def open_container(context: CliContext | None = None) -> Generator[Container, None, None]:
    """Yield a container and close its store when the command finishes."""
    context = context or get_cli_context()
    container = build_container(context)
    configure_logging(container.config(), context)
    try:
        yield container
    finally:
        container.store().close()


def configure_logging(settings: Settings, context: CliContext) -> None:
    """Apply the logging section of the settings. ``--log-level`` wins."""
    level = context.log_level.value if context.log_level is not None else settings.logging.level
    setup_structured_logger(ROOT_LOGGER_NAME, level, settings.logging.file)
