"""
Tests for the tracevault maintenance CLI.

Every invocation runs against a SQLite store configured through a TOML file
under tmp_path, so state seeded before an invocation is visible to it.
"""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from tracevault.cli.typer_app import __version__, app
from tracevault.services import BundleStore, create_default_registry
from tracevault.storage import SQLiteKeyValueStore

TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "store.db"


@pytest.fixture
def config_file(tmp_path: Path, db_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        f'[storage]\nbackend = "sqlite"\npath = "{db_path.as_posix()}"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def bundle_id(db_path: Path) -> str:
    """Seed two cache entries and one bundle; return the bundle id."""
    store = SQLiteKeyValueStore(db_path)
    try:
        registry = create_default_registry(store)
        registry.contract.cache_contract_name("0xABC", "Token")
        registry.simulation.cache_simulation_result(TX_HASH, {"gas_used": 21000})
        return BundleStore(store).save(
            source_transaction_id=TX_HASH,
            primary_result={"status": "success"},
            trace=[{"op": "CALL"}],
            resolved_names=[("0xabc", "Token")],
            description="first analysis",
        )
    finally:
        store.close()


def _invoke(runner: CliRunner, config_file: Path, *args: str):
    return runner.invoke(app, ["--config", str(config_file), "--log-level", "ERROR", *args])


def _json(output: str) -> dict:
    return orjson.loads(output)


class TestVersionAndHelp:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("stats", "cleanup", "clear", "bundles"):
            assert command in result.output


class TestStatsCommand:
    def test_table_output(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "stats")

        assert result.exit_code == 0, result.output
        assert "contract" in result.output
        assert "simulation" in result.output
        assert "Total: 2 entries" in result.output
        assert "Bundles: 1 saved" in result.output
        assert "Store: " in result.output

    def test_json_output(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "stats", "--json")

        assert result.exit_code == 0, result.output
        payload = _json(result.output)
        assert payload["success"] is True
        caches = payload["data"]["caches"]
        assert set(caches) == {"contract", "transaction", "simulation"}
        assert caches["contract"]["count"] == 1
        assert caches["transaction"]["count"] == 0
        assert payload["data"]["totals"]["count"] == 2
        assert payload["data"]["bundles"]["count"] == 1
        assert payload["data"]["storage"]["used_bytes"] > 0

    def test_empty_store(self, runner: CliRunner, config_file: Path) -> None:
        result = _invoke(runner, config_file, "stats")

        assert result.exit_code == 0, result.output
        assert "Total: 0 entries" in result.output


class TestCleanupAndClear:
    def test_cleanup_json(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "cleanup", "--json")

        assert result.exit_code == 0, result.output
        data = _json(result.output)["data"]
        assert data["contract"]["remaining"] == 1
        assert data["contract"]["expired_removed"] == 0

    def test_clear_one_cache(
        self, runner: CliRunner, config_file: Path, db_path: Path, bundle_id: str
    ) -> None:
        result = _invoke(runner, config_file, "clear", "contract")

        assert result.exit_code == 0, result.output
        assert "Cleared 1 entries" in result.output

        store = SQLiteKeyValueStore(db_path)
        try:
            registry = create_default_registry(store)
            assert registry.contract.stats().count == 0
            assert registry.simulation.stats().count == 1
            assert BundleStore(store).load(bundle_id) is not None
        finally:
            store.close()

    def test_clear_all_keeps_bundles(
        self, runner: CliRunner, config_file: Path, db_path: Path, bundle_id: str
    ) -> None:
        result = _invoke(runner, config_file, "clear", "--json")

        assert result.exit_code == 0, result.output
        assert _json(result.output)["data"] == {"contract": 1, "transaction": 0, "simulation": 1}

        store = SQLiteKeyValueStore(db_path)
        try:
            assert [b.id for b in BundleStore(store).list_all()] == [bundle_id]
        finally:
            store.close()

    def test_clear_unknown_cache(self, runner: CliRunner, config_file: Path) -> None:
        result = _invoke(runner, config_file, "clear", "nonexistent")

        assert result.exit_code == 2
        assert "nonexistent" in result.output


class TestBundleCommands:
    def test_list(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "bundles", "list", "--json")

        assert result.exit_code == 0, result.output
        (entry,) = _json(result.output)["data"]
        assert entry["id"] == bundle_id
        assert entry["source_transaction_id"] == TX_HASH
        assert entry["description"] == "first analysis"
        assert entry["resolved_names"] == 1

    def test_list_empty(self, runner: CliRunner, config_file: Path) -> None:
        result = _invoke(runner, config_file, "bundles", "list")

        assert result.exit_code == 0
        assert "No saved analysis bundles." in result.output

    def test_show(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "bundles", "show", bundle_id)

        assert result.exit_code == 0, result.output
        bundle = _json(result.output)
        assert bundle["id"] == bundle_id
        assert bundle["primary_result"] == {"status": "success"}
        assert bundle["resolved_names"] == [["0xabc", "Token"]]

    def test_show_missing(self, runner: CliRunner, config_file: Path) -> None:
        result = _invoke(runner, config_file, "bundles", "show", "bundle_0_missing")

        assert result.exit_code == 2
        assert "bundle_0_missing" in result.output

    def test_delete(
        self, runner: CliRunner, config_file: Path, db_path: Path, bundle_id: str
    ) -> None:
        result = _invoke(runner, config_file, "bundles", "delete", bundle_id)

        assert result.exit_code == 0, result.output
        store = SQLiteKeyValueStore(db_path)
        try:
            assert BundleStore(store).load(bundle_id) is None
        finally:
            store.close()

    def test_delete_missing(self, runner: CliRunner, config_file: Path) -> None:
        result = _invoke(runner, config_file, "bundles", "delete", "bundle_0_missing")

        assert result.exit_code == 2

    def test_clear_with_yes(self, runner: CliRunner, config_file: Path, bundle_id: str) -> None:
        result = _invoke(runner, config_file, "bundles", "clear", "--yes")

        assert result.exit_code == 0, result.output
        assert "Deleted 1 bundles" in result.output

    def test_clear_declined(
        self, runner: CliRunner, config_file: Path, db_path: Path, bundle_id: str
    ) -> None:
        result = runner.invoke(
            app,
            ["--config", str(config_file), "bundles", "clear"],
            input="n\n",
        )

        assert result.exit_code == 1
        store = SQLiteKeyValueStore(db_path)
        try:
            assert BundleStore(store).stats().count == 1
        finally:
            store.close()


class TestConfigErrors:
    def test_invalid_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.toml"
        bad.write_text('[storage]\nbackend = "floppy"\n', encoding="utf-8")

        result = runner.invoke(app, ["--config", str(bad), "stats"])

        assert result.exit_code == 1
        assert "Error:" in result.output
