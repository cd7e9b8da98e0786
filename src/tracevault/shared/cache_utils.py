"""Cache utility functions for request key derivation.

This module provides utilities for generating consistent logical cache keys
from API request URLs and parameters. Identical requests produce identical
keys regardless of parameter ordering.

Example:
    >>> from tracevault.shared.cache_utils import generate_cache_key
    >>> generate_cache_key("https://api.example.io/v1/tx")
    'https___api_example_io_v1_tx'
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

import orjson

from tracevault.shared.constants import CacheKeyConfig

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


def canonical_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop ``None`` values so that absent and null parameters hash alike.

    Args:
        params: Query parameters dictionary. Can be None.

    Returns:
        Parameters without ``None`` values. Returns empty dict if params is None.

    Example:
        >>> canonical_params({"module": "contract", "page": None})
        {'module': 'contract'}
    """
    if not params:
        return {}
    return {k: v for k, v in params.items() if v is not None}


def params_digest(params: dict[str, Any]) -> str:
    """Return a short, order-independent SHA-256 digest of ``params``.

    Raises:
        TypeError: If a parameter value is not JSON serializable
    """
    payload = orjson.dumps(params, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS)
    return hashlib.sha256(payload).hexdigest()[: CacheKeyConfig.PARAMS_DIGEST_LENGTH]


def generate_cache_key(url: str, params: dict[str, Any] | None = None) -> str:
    """Generate a logical cache key from a request URL and its parameters.

    Key format:
        - Without params: ``{sanitized_url}``
        - With params: ``{sanitized_url}_{params_digest}``

    Every non-alphanumeric character of the URL becomes ``_``.

    Args:
        url: Request URL or endpoint name. Must be non-empty.
        params: Query parameters. ``None`` values are ignored.

    Returns:
        Logical cache key suitable for ``CacheEngine.put``/``get``.

    Raises:
        ValueError: If url is empty

    Example:
        >>> a = generate_cache_key("/api", {"a": 1, "b": 2})
        >>> b = generate_cache_key("/api", {"b": 2, "a": 1})
        >>> a == b
        True
    """
    if not url:
        raise ValueError("url cannot be empty")

    base_key = _NON_ALPHANUMERIC.sub("_", url)
    normalized = canonical_params(params)
    if not normalized:
        return base_key
    return f"{base_key}_{params_digest(normalized)}"
