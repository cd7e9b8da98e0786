"""Tests for MemoryKeyValueStore."""

from __future__ import annotations

import pytest

from tracevault.shared.errors import ErrorCode, StorageDeniedError, StorageFullError
from tracevault.storage import MemoryKeyValueStore


class TestMemoryKeyValueStoreFailures:
    """Degraded-mode behavior: quota and read-only."""

    def test_read_only_store_refuses_writes(self) -> None:
        """Writes to a read-only store raise StorageDeniedError."""
        # Given
        store = MemoryKeyValueStore(read_only=True)

        # When / Then
        with pytest.raises(StorageDeniedError) as exc_info:
            store.set_raw("k", "v")
        assert exc_info.value.code == ErrorCode.STORAGE_DENIED
        assert store.get_raw("k") is None

    def test_quota_exceeded_raises_and_keeps_previous_value(self) -> None:
        """A write past the quota fails and leaves existing data untouched."""
        # Given
        store = MemoryKeyValueStore(max_bytes=10)
        store.set_raw("k", "12345")  # 6 bytes

        # When / Then
        with pytest.raises(StorageFullError) as exc_info:
            store.set_raw("other", "123456")  # 11 more bytes
        assert exc_info.value.code == ErrorCode.STORAGE_FULL
        assert store.get_raw("k") == "12345"
        assert store.get_raw("other") is None
        assert store.used_bytes() == 6

    def test_replacing_a_value_releases_its_old_size(self) -> None:
        """Overwriting a key only counts the new value against the quota."""
        # Given
        store = MemoryKeyValueStore(max_bytes=10)
        store.set_raw("k", "123456789")  # exactly 10 bytes

        # When
        store.set_raw("k", "abcdefghi")

        # Then
        assert store.get_raw("k") == "abcdefghi"
        assert store.used_bytes() == 10


class TestMemoryKeyValueStoreOperations:
    """Basic CRUD and enumeration."""

    def test_get_absent_key_returns_none(self) -> None:
        assert MemoryKeyValueStore().get_raw("missing") is None

    def test_set_get_remove(self) -> None:
        # Given
        store = MemoryKeyValueStore()

        # When
        store.set_raw("k", "v")

        # Then
        assert store.get_raw("k") == "v"
        store.remove_raw("k")
        assert store.get_raw("k") is None
        assert store.used_bytes() == 0

    def test_remove_absent_key_is_not_an_error(self) -> None:
        MemoryKeyValueStore().remove_raw("missing")

    def test_list_keys_filters_by_prefix_and_sorts(self) -> None:
        # Given
        store = MemoryKeyValueStore()
        for key in ("tx_cache_b", "contract_cache_a", "tx_cache_a"):
            store.set_raw(key, "{}")

        # When / Then
        assert store.list_keys("tx_cache_") == ["tx_cache_a", "tx_cache_b"]
        assert store.list_keys() == ["contract_cache_a", "tx_cache_a", "tx_cache_b"]

    def test_size_counts_utf8_bytes(self) -> None:
        store = MemoryKeyValueStore()
        assert store.size_of("k", "é") == 3

    def test_context_manager_closes(self) -> None:
        with MemoryKeyValueStore() as store:
            store.set_raw("k", "v")
            assert store.get_raw("k") == "v"
