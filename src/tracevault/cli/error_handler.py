"""
CLI error handling.

Every command funnels its exceptions through ``handle_cli_error``, which
turns them into a ``CliError`` with an exit code, logs it once and prints
it either as an ``Error: ...`` line on stderr or as a JSON envelope.

Exit codes: 0 success, 2 when a named cache or bundle does not exist,
1 for everything else.
"""

from __future__ import annotations

import logging
from typing import Any

import typer
from pydantic import ValidationError

from tracevault.cli.json_formatter import format_json_output
from tracevault.shared.constants import CLIDefaults
from tracevault.shared.errors import (
    CliError,
    DomainError,
    ErrorCode,
    InfrastructureError,
    TraceVaultError,
    create_cli_error,
)
from tracevault.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({ErrorCode.CACHE_NOT_REGISTERED, ErrorCode.BUNDLE_NOT_FOUND})


def exit_code_for(error: Exception) -> int:
    if isinstance(error, CliError):
        return error.exit_code
    if isinstance(error, DomainError) and error.code in NOT_FOUND_CODES:
        return CLIDefaults.EXIT_NOT_FOUND
    return CLIDefaults.EXIT_ERROR


def describe_error(error: Exception) -> tuple[str, str]:
    """Return ``(category, user-facing message)`` for an exception."""
    if isinstance(error, DomainError):
        return "domain", error.message
    if isinstance(error, InfrastructureError):
        return "storage", f"Storage error: {error.message}"
    if isinstance(error, TraceVaultError):
        return "application", f"Application error: {error.message}"
    if isinstance(error, ValidationError):
        return "configuration", f"Invalid configuration: {error.error_count()} validation error(s)"
    if isinstance(error, OSError):
        return "file_system", f"File system error: {error}"
    return "unexpected", f"Unexpected error: {error}"


def to_cli_error(error: Exception, command: str) -> CliError:
    if isinstance(error, CliError):
        return error
    _, message = describe_error(error)
    return create_cli_error(
        message=message,
        command=command,
        original_error=error,
        exit_code=exit_code_for(error),
    )


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Log and print ``error`` for ``command``; return the exit code.

    Args:
        error: The exception raised by the command
        command: Command name as typed, e.g. ``"bundles show"``
        json_output: Print the JSON envelope instead of a stderr line
    """
    category, _ = describe_error(error)
    details: dict[str, Any] = {
        "command": command,
        "error_type": type(error).__name__,
        "error_category": category,
    }
    if isinstance(error, TraceVaultError):
        details["error_code"] = error.code.value

    cli_error = to_cli_error(error, command)
    log_operation_error(logger=logger, error=cli_error, operation=command, additional_context=details)

    if json_output:
        envelope = format_json_output(
            success=False,
            command=command,
            errors=[cli_error.message],
            data={**details, "exit_code": cli_error.exit_code},
        )
        typer.echo(envelope.decode("utf-8"))
    else:
        typer.echo(f"Error: {cli_error.message}", err=True)

    return cli_error.exit_code
