"""Tests for BundleStore."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import pytest

from tracevault.services import AnalysisBundle, BundleStore, create_default_registry
from tracevault.shared.errors import DomainError, ErrorCode, StorageDeniedError, StorageFullError
from tracevault.storage import MemoryKeyValueStore, SQLiteKeyValueStore

if TYPE_CHECKING:
    from conftest import FakeClock

TX = "0x5c504ed432cb51138bcf09aa5e8a410dd4a1e204ef84bfed1be16dfba1b22060"


@pytest.fixture
def bundle_store(memory_store: MemoryKeyValueStore, clock: FakeClock) -> BundleStore:
    return BundleStore(memory_store, clock=clock)


def save_sample(store: BundleStore, tx: str = TX, description: str | None = None) -> str:
    return store.save(
        source_transaction_id=tx,
        primary_result={"simulation": {"status": True}},
        trace={"trace": [{"op": "CALL", "depth": 1}]},
        resolved_names=[("0xabc", "Vault"), ("0xdef", "Router")],
        description=description,
    )


class TestBundleSaveFailures:
    """Bundle writes are user data: failures raise."""

    def test_full_store_raises(self, clock: FakeClock) -> None:
        store = BundleStore(MemoryKeyValueStore(max_bytes=50), clock=clock)

        with pytest.raises(StorageFullError):
            save_sample(store)

    def test_read_only_store_raises(self, clock: FakeClock) -> None:
        store = BundleStore(MemoryKeyValueStore(read_only=True), clock=clock)

        with pytest.raises(StorageDeniedError):
            save_sample(store)

    def test_unserializable_payload_raises(self, bundle_store: BundleStore) -> None:
        with pytest.raises(DomainError) as exc_info:
            bundle_store.save(TX, object(), None, [])
        assert exc_info.value.code == ErrorCode.BUNDLE_WRITE_FAILED
        assert bundle_store.list_all() == []

    def test_id_collisions_are_regenerated(self, bundle_store: BundleStore, mocker) -> None:
        # Given: the first generated id is already taken
        taken = "bundle_1_aaaaaaaaa"
        bundle_store.store.set_raw(f"analysis_bundle_{taken}", "{}")
        mocker.patch.object(bundle_store, "_new_id", side_effect=[taken, "bundle_1_bbbbbbbbb"])

        # When
        bundle_id = save_sample(bundle_store)

        # Then
        assert bundle_id == "bundle_1_bbbbbbbbb"
        assert bundle_store.store.get_raw(f"analysis_bundle_{taken}") == "{}"

    def test_id_exhaustion_raises(self, bundle_store: BundleStore, mocker) -> None:
        taken = "bundle_1_aaaaaaaaa"
        bundle_store.store.set_raw(f"analysis_bundle_{taken}", "{}")
        mocker.patch.object(bundle_store, "_new_id", return_value=taken)

        with pytest.raises(DomainError) as exc_info:
            save_sample(bundle_store)
        assert exc_info.value.code == ErrorCode.BUNDLE_ID_EXHAUSTED


class TestBundleRoundTrip:
    def test_save_then_load(self, bundle_store: BundleStore, clock: FakeClock) -> None:
        # Given
        bundle_id = save_sample(bundle_store, description="Exploit replay")

        # When
        bundle = bundle_store.load(bundle_id)

        # Then
        assert isinstance(bundle, AnalysisBundle)
        assert bundle.id == bundle_id
        assert bundle.timestamp == clock.now
        assert bundle.source_transaction_id == TX
        assert bundle.primary_result == {"simulation": {"status": True}}
        assert bundle.trace == {"trace": [{"op": "CALL", "depth": 1}]}
        assert bundle.resolved_names == [("0xabc", "Vault"), ("0xdef", "Router")]
        assert bundle.description == "Exploit replay"

    def test_uint256_values_survive_exactly(self, bundle_store: BundleStore) -> None:
        # Given: a raw uint256 balance and a token amount in wei
        max_uint = 2**256 - 1
        bundle_id = bundle_store.save(
            source_transaction_id=TX,
            primary_result={"balance": max_uint, "amount": 10**30},
            trace={"trace": [{"op": "SSTORE", "value": max_uint}]},
            resolved_names=[],
        )

        # When
        bundle = bundle_store.load(bundle_id)

        # Then
        assert bundle is not None
        assert bundle.primary_result == {"balance": max_uint, "amount": 10**30}
        assert type(bundle.primary_result["amount"]) is int
        assert bundle.trace["trace"][0]["value"] == max_uint

    def test_id_format(self, bundle_store: BundleStore, clock: FakeClock) -> None:
        bundle_id = save_sample(bundle_store)

        epoch_ms = int(clock.now.timestamp() * 1000)
        assert re.fullmatch(rf"bundle_{epoch_ms}_[0-9a-f]{{9}}", bundle_id)

    def test_missing_description_gets_label(self, bundle_store: BundleStore) -> None:
        bundle = bundle_store.load(save_sample(bundle_store))

        assert bundle is not None
        assert bundle.description is None
        assert bundle.label == f"Analysis of {TX[:10]}..."

    def test_survives_sqlite_reopen(self, sqlite_store: SQLiteKeyValueStore, tmp_path, clock: FakeClock) -> None:
        bundle_id = save_sample(BundleStore(sqlite_store, clock=clock))
        sqlite_store.close()

        with SQLiteKeyValueStore(tmp_path / "store.db") as reopened:
            bundle = BundleStore(reopened).load(bundle_id)

        assert bundle is not None
        assert bundle.resolved_names[0] == ("0xabc", "Vault")


class TestBundleListing:
    def test_list_newest_first(self, bundle_store: BundleStore, clock: FakeClock) -> None:
        first = save_sample(bundle_store, tx="0x01")
        clock.advance(5)
        second = save_sample(bundle_store, tx="0x02")

        assert [b.id for b in bundle_store.list_all()] == [second, first]

    def test_corrupt_records_skipped_and_left_in_place(
        self, bundle_store: BundleStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        # Given
        good = save_sample(bundle_store)
        bundle_store.store.set_raw("analysis_bundle_bundle_0_broken", "{oops")

        # When
        with caplog.at_level(logging.WARNING):
            bundles = bundle_store.list_all()

        # Then
        assert [b.id for b in bundles] == [good]
        assert bundle_store.load("bundle_0_broken") is None
        assert bundle_store.store.get_raw("analysis_bundle_bundle_0_broken") == "{oops"
        assert any("corrupted bundle" in r.getMessage() for r in caplog.records)

    def test_load_missing_returns_none(self, bundle_store: BundleStore) -> None:
        assert bundle_store.load("bundle_0_missing") is None


class TestBundleDeletion:
    def test_delete(self, bundle_store: BundleStore) -> None:
        bundle_id = save_sample(bundle_store)

        assert bundle_store.delete(bundle_id) is True
        assert bundle_store.delete(bundle_id) is False
        assert bundle_store.load(bundle_id) is None

    def test_delete_all_spares_caches(self, memory_store: MemoryKeyValueStore, clock: FakeClock) -> None:
        # Given
        registry = create_default_registry(memory_store, clock=clock)
        bundles = BundleStore(memory_store, clock=clock)
        registry.contract.cache_contract_name("0xabc", "Vault")
        save_sample(bundles)
        save_sample(bundles)

        # When
        removed = bundles.delete_all()

        # Then
        assert removed == 2
        assert bundles.list_all() == []
        assert registry.contract.get_cached_contract_name("0xabc") == "Vault"

    def test_cache_clear_spares_bundles(self, memory_store: MemoryKeyValueStore, clock: FakeClock) -> None:
        registry = create_default_registry(memory_store, clock=clock)
        bundles = BundleStore(memory_store, clock=clock)
        bundle_id = save_sample(bundles)

        for engine in registry:
            engine.clear()
            engine.cleanup()

        assert bundles.load(bundle_id) is not None

    def test_bundles_never_expire(self, bundle_store: BundleStore, clock: FakeClock) -> None:
        bundle_id = save_sample(bundle_store)
        clock.advance(365 * 24 * 3600)

        assert bundle_store.load(bundle_id) is not None


class TestBundleStats:
    def test_stats(self, bundle_store: BundleStore) -> None:
        assert bundle_store.stats().count == 0

        save_sample(bundle_store)
        save_sample(bundle_store)
        stats = bundle_store.stats()

        assert stats.count == 2
        assert stats.approx_total_byte_size > 0
        assert stats.to_dict()["count"] == 2
