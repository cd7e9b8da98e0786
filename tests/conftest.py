"""
Pytest configuration and shared fixtures for TraceVault tests.

This module provides common fixtures that can be used across all test
modules in the project.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tracevault.services import CacheConfig, CacheEngine
from tracevault.shared.logging import ROOT_LOGGER_NAME
from tracevault.storage import MemoryKeyValueStore, SQLiteKeyValueStore

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from real config files, .env files and the home directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("TRACEVAULT_STORAGE__BACKEND", raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Generator[None, None, None]:
    """Undo setup_structured_logger so caplog sees package records."""
    yield
    names = [ROOT_LOGGER_NAME] + [
        name for name in logging.root.manager.loggerDict if name.startswith(f"{ROOT_LOGGER_NAME}.")
    ]
    for name in names:
        package_logger = logging.getLogger(name)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Generator[SQLiteKeyValueStore, None, None]:
    store = SQLiteKeyValueStore(tmp_path / "store.db")
    yield store
    store.close()


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(
        name="contract",
        default_ttl_seconds=60,
        max_entries=3,
        key_prefix="contract_cache_",
    )


@pytest.fixture
def engine(cache_config: CacheConfig, memory_store: MemoryKeyValueStore, clock: FakeClock) -> CacheEngine:
    return CacheEngine(cache_config, memory_store, clock=clock)
