"""
CLI Constants

Help text, defaults and exit codes for the tracevault maintenance CLI.
"""

from __future__ import annotations

from typing import Literal


class CLIHelp:
    """CLI help text and descriptions."""

    VERSION_HELP = "Print version information and exit."
    VERSION_TEXT = "TraceVault CLI v{version}"

    APP_NAME = "tracevault"
    APP_DESCRIPTION = "TraceVault - cache and analysis bundle maintenance"
    APP_STYLE: Literal["rich"] = "rich"

    CONFIG_HELP = "Path to a TOML configuration file."
    LOG_LEVEL_HELP = "Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    JSON_HELP = "Emit machine-readable JSON instead of tables."

    STATS_HELP = "Show item counts, sizes and oldest entry age for every cache."
    CLEANUP_HELP = "Remove expired entries and enforce capacity limits."
    CLEAR_HELP = "Clear one named cache, or every named cache when no name is given."
    BUNDLES_HELP = "List, inspect and delete saved analysis bundles."
    BUNDLES_LIST_HELP = "List saved bundles, newest first."
    BUNDLES_SHOW_HELP = "Print one bundle as JSON."
    BUNDLES_DELETE_HELP = "Delete one bundle."
    BUNDLES_CLEAR_HELP = "Delete every saved bundle. This cannot be undone."
    YES_HELP = "Confirm a destructive operation without prompting."


class CLIDefaults:
    """CLI default values."""

    VERSION = "0.1.0"

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_NOT_FOUND = 2

    TX_PREVIEW_HEAD = 6
    TX_PREVIEW_TAIL = 4


class LogConfig:
    """Logging defaults."""

    DEFAULT_LEVEL = "INFO"
    DEFAULT_FILE_PATH: str | None = None
