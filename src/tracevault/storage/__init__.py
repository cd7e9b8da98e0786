"""Durable key/value substrate.

Backends:
- MemoryKeyValueStore: in-process dict, optional quota and read-only mode
- SQLiteKeyValueStore: single-table SQLite file with WAL and optional quota
"""

from tracevault.storage.base import KeyValueStore
from tracevault.storage.memory import MemoryKeyValueStore
from tracevault.storage.sqlite_store import SQLiteKeyValueStore

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SQLiteKeyValueStore"]
