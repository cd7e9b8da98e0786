"""
JSON output for ``--json`` CLI commands.

Every command prints one envelope::

    {"command": ..., "data": ..., "errors": [...], "success": ..., "timestamp": ...}

Dataclasses and datetimes are serialized natively by orjson; pydantic models,
timedeltas and sets go through ``_encode_extra``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import orjson
from pydantic import BaseModel

_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS


def _encode_extra(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _envelope(success: bool, command: str, data: Any, errors: list[str]) -> dict[str, Any]:
    return {
        "success": success and not errors,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "data": data,
        "errors": errors,
    }


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[str] | None = None,
) -> bytes:
    """
    Encode a command result as the JSON envelope.

    ``success`` is forced to False whenever ``errors`` is non-empty. If
    ``data`` cannot be encoded the envelope reports the encoding failure
    instead of raising.
    """
    errors = list(errors or [])
    try:
        return orjson.dumps(_envelope(success, command, data, errors), default=_encode_extra, option=_OPTIONS)
    except orjson.JSONEncodeError as e:
        failure = _envelope(False, command, None, [*errors, f"JSON serialization failed: {e!s}"])
        return orjson.dumps(failure, option=_OPTIONS)
