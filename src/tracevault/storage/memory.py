"""In-process key/value store.

Dict-backed ``KeyValueStore`` with an optional byte quota and a read-only
switch, so degraded-mode behavior (full or denied storage) can be exercised
without touching disk.
"""

from __future__ import annotations

import logging
import threading

from tracevault.shared.errors import (
    ErrorCode,
    ErrorContext,
    StorageDeniedError,
    StorageFullError,
)
from tracevault.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class MemoryKeyValueStore(KeyValueStore):
    """Thread-safe in-memory ``KeyValueStore``.

    Args:
        max_bytes: Optional quota over the summed size of all keys and
            values. ``None`` means unbounded.
        read_only: When True every write raises ``StorageDeniedError``.
    """

    def __init__(self, max_bytes: int | None = None, *, read_only: bool = False) -> None:
        self.max_bytes = max_bytes
        self.read_only = read_only
        self._data: dict[str, str] = {}
        self._used_bytes = 0
        self._lock = threading.Lock()

    def used_bytes(self) -> int:
        """Summed size of every stored key and value."""
        with self._lock:
            return self._used_bytes

    def set_raw(self, key: str, value: str) -> None:
        context = ErrorContext(
            operation="set_raw",
            additional_data={"key": key, "value_size": len(value)},
        )
        if self.read_only:
            raise StorageDeniedError(
                ErrorCode.STORAGE_DENIED,
                f"Store is read-only, refused write for key '{key}'",
                context,
            )

        with self._lock:
            previous = self._data.get(key)
            released = self.size_of(key, previous) if previous is not None else 0
            required = self.size_of(key, value)
            projected = self._used_bytes - released + required
            if self.max_bytes is not None and projected > self.max_bytes:
                raise StorageFullError(
                    ErrorCode.STORAGE_FULL,
                    f"Storage quota of {self.max_bytes} bytes exceeded "
                    f"writing key '{key}' ({required} bytes)",
                    context,
                )
            self._data[key] = value
            self._used_bytes = projected

    def get_raw(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def remove_raw(self, key: str) -> None:
        with self._lock:
            previous = self._data.pop(key, None)
            if previous is not None:
                self._used_bytes -= self.size_of(key, previous)

    def list_keys(self, prefix: str | None = None) -> list[str]:
        with self._lock:
            keys = list(self._data)
        if prefix:
            keys = [k for k in keys if k.startswith(prefix)]
        return sorted(keys)

    def close(self) -> None:
        logger.debug("Closed in-memory store holding %d keys", len(self._data))
