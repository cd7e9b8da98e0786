"""TraceVault Error Handling Module

Structured exceptions shared by the storage backends, the caches, the
bundle store and the CLI.

- ErrorCode is the single list of error codes
- ErrorContext carries primitive-only diagnostic data that is safe to log
- Every error keeps the exception it wraps in ``original_error``

Storage keys can embed full API URLs, so ``ErrorContext.safe_dict`` shortens
key-like values and redacts credentials in query strings before anything
reaches a log record.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Union

from tracevault.shared.constants import CacheKeyConfig

PrimitiveContextValue = Union[str, int, float, bool]

# additional_data entries whose values are storage keys
KEY_FIELDS: frozenset[str] = frozenset({"key", "storage_key", "oldest_key"})

_CREDENTIAL_PATTERN = re.compile(r"(?i)\b(api_?key|access_?key|token)=[^&\s]+")


class ErrorCode(str, Enum):
    """Error codes for TraceVault."""

    # Files and configuration sources
    FILE_READ_ERROR = "FILE_READ_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Durable substrate
    STORAGE_ERROR = "STORAGE_ERROR"
    STORAGE_FULL = "STORAGE_FULL"
    STORAGE_DENIED = "STORAGE_DENIED"
    STORAGE_CLOSED = "STORAGE_CLOSED"

    # Caches
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    CACHE_NOT_REGISTERED = "CACHE_NOT_REGISTERED"

    # Analysis bundles
    BUNDLE_NOT_FOUND = "BUNDLE_NOT_FOUND"
    BUNDLE_WRITE_FAILED = "BUNDLE_WRITE_FAILED"
    BUNDLE_CORRUPTED = "BUNDLE_CORRUPTED"
    BUNDLE_ID_EXHAUSTED = "BUNDLE_ID_EXHAUSTED"

    # CLI
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _to_primitive(name: str, value: Any) -> PrimitiveContextValue:
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    msg = f"additional_data['{name}'] has unsupported type {type(value).__name__}"
    raise TypeError(msg)


def redact(value: str) -> str:
    """Replace credentials in ``name=value`` query parameters with ``***``."""
    return _CREDENTIAL_PATTERN.sub(lambda m: f"{m.group(1)}=***", value)


def shorten_key(key: str) -> str:
    limit = CacheKeyConfig.LOG_KEY_PREVIEW_LENGTH
    return key if len(key) <= limit else f"{key[:limit]}..."


@dataclass(frozen=True)
class ErrorContext:
    """Diagnostic data attached to an error.

    ``additional_data`` values are coerced to str/int/float/bool on
    construction; ``None`` values are dropped. Anything else raises
    ``TypeError`` so that cached payloads cannot leak into logs by accident.

    Attributes:
        operation: Name of the operation that failed, e.g. ``cache_put``
        additional_data: Primitive key/value pairs
    """

    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is None:
            return
        if not isinstance(self.additional_data, dict):
            msg = f"additional_data must be a dict, got {type(self.additional_data).__name__}"
            raise TypeError(msg)
        coerced = {
            name: _to_primitive(name, value)
            for name, value in self.additional_data.items()
            if value is not None
        }
        object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self) -> dict[str, Any]:
        """Loggable view: long keys shortened, credentials redacted.

        Example:
            >>> ErrorContext(additional_data={"url": "x?apikey=abc"}).safe_dict()
            {'additional_data': {'url': 'x?apikey=***'}}
        """
        data: dict[str, Any] = {}
        if self.operation is not None:
            data["operation"] = self.operation

        safe: dict[str, PrimitiveContextValue] = {}
        for name, value in (self.additional_data or {}).items():
            if isinstance(value, str):
                value = redact(value)
                if name in KEY_FIELDS:
                    value = shorten_key(value)
            safe[name] = value
        data["additional_data"] = safe
        return data


class TraceVaultError(Exception):
    """Base exception class for all TraceVault errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Loggable representation built on ``ErrorContext.safe_dict``."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(TraceVaultError):
    """A cache or bundle rule was violated.

    Examples: overlapping key prefixes, an unregistered cache name, a
    corrupted record, an unserializable bundle.
    """


class InfrastructureError(TraceVaultError):
    """Failure talking to the durable substrate or the file system."""


class StorageError(InfrastructureError):
    """Errors raised by a KeyValueStore backend."""


class StorageFullError(StorageError):
    """The durable store refused a write because its quota is exhausted."""


class StorageDeniedError(StorageError):
    """The durable store refused a write because it is not writable."""


class ApplicationError(TraceVaultError):
    """Failure in application code around the caches, e.g. a producer."""


class CliError(ApplicationError):
    """Error surfaced by a CLI command, with the exit code to use."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ):
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Invalid configuration: bad settings file, duplicate or overlapping prefix."""
    return DomainError(
        ErrorCode.CONFIG_INVALID,
        message,
        ErrorContext(operation=operation, additional_data={"config_key": config_key}),
        original_error,
    )


def create_cli_error(
    message: str,
    command: str | None = None,
    original_error: Exception | None = None,
    exit_code: int = 1,
) -> CliError:
    return CliError(
        ErrorCode.CLI_UNEXPECTED_ERROR,
        message,
        ErrorContext(operation=command),
        original_error,
        command,
        exit_code,
    )
