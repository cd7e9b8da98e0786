"""Durable key/value substrate contract.

Every cache and the bundle store persist through a ``KeyValueStore``: a flat,
string-keyed, string-valued namespace. Components partition it strictly by
key prefix; a store never interprets the values it holds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self


class KeyValueStore(ABC):
    """Abstract interface for durable key/value backends.

    Single-key reads and writes must be atomic. No cross-key transaction
    is ever required by callers.
    """

    # Quota in bytes, None for unbounded
    max_bytes: int | None = None

    @abstractmethod
    def set_raw(self, key: str, value: str) -> None:
        """Write ``value`` at ``key``, replacing any previous value.

        Raises:
            StorageFullError: If the write would exceed the store's quota.
            StorageDeniedError: If the store is not writable.
            StorageError: For any other backend failure.
        """

    @abstractmethod
    def get_raw(self, key: str) -> str | None:
        """Return the value at ``key`` or ``None`` when absent."""

    @abstractmethod
    def remove_raw(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""

    @abstractmethod
    def list_keys(self, prefix: str | None = None) -> list[str]:
        """Return every key, or only those starting with ``prefix``, sorted."""

    @abstractmethod
    def used_bytes(self) -> int:
        """Bytes currently counted against the quota (see ``size_of``)."""

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""

    def size_of(self, key: str, value: str) -> int:
        """Bytes a key/value pair counts against the store quota."""
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
