"""SQLite-backed durable key/value store.

A single ``kv_store`` table holds every key of every component. The store
enforces an optional byte quota the way browser local storage does: writes
past the quota fail with ``StorageFullError`` and nothing already stored is
touched.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from tracevault.shared.constants import StorageConfig
from tracevault.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    StorageDeniedError,
    StorageError,
    StorageFullError,
)
from tracevault.shared.logging import log_operation_error, log_operation_success
from tracevault.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {StorageConfig.TABLE_NAME} (
    key TEXT PRIMARY KEY NOT NULL,
    value TEXT NOT NULL,
    size INTEGER NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL,
    CHECK (length(key) > 0)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""

# Substrings of sqlite3 error messages, mapped to the storage taxonomy
_FULL_MARKERS = ("database or disk is full",)
_DENIED_MARKERS = ("readonly database", "permission denied", "access permission")


def translate_sqlite_error(error: sqlite3.Error, key: str, operation: str) -> StorageError:
    """Map a sqlite3 error onto ``StorageFullError``/``StorageDeniedError``.

    Args:
        error: The sqlite3 exception raised by the driver
        key: Key being accessed when the error occurred
        operation: Store operation name for the error context

    Returns:
        The matching StorageError subclass instance (not raised)
    """
    message = str(error).lower()
    context = ErrorContext(
        operation=operation,
        additional_data={"key": key, "sqlite_error": str(error)},
    )
    if any(marker in message for marker in _FULL_MARKERS):
        return StorageFullError(
            ErrorCode.STORAGE_FULL,
            f"SQLite store is full, refused write for key '{key}'",
            context,
            error,
        )
    if any(marker in message for marker in _DENIED_MARKERS):
        return StorageDeniedError(
            ErrorCode.STORAGE_DENIED,
            f"SQLite store is not writable, refused write for key '{key}'",
            context,
            error,
        )
    return StorageError(
        ErrorCode.STORAGE_ERROR,
        f"SQLite operation '{operation}' failed for key '{key}': {error!s}",
        context,
        error,
    )


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite ``KeyValueStore`` with WAL journaling and an optional quota.

    Attributes:
        db_path: Path to SQLite database file
        max_bytes: Quota over the summed byte size of keys and values
        conn: SQLite database connection (None once closed)

    Example:
        >>> store = SQLiteKeyValueStore(Path("store.db"), max_bytes=5 * 1024 * 1024)
        >>> store.set_raw("tx_cache_0xabc", '{"data": 1}')
        >>> store.list_keys("tx_cache_")
        ['tx_cache_0xabc']
        >>> store.close()
    """

    def __init__(self, db_path: Path | str, max_bytes: int | None = None) -> None:
        """Open (creating if needed) the database at ``db_path``.

        Raises:
            InfrastructureError: If the database cannot be opened or initialized
        """
        self.db_path = Path(db_path)
        self.max_bytes = max_bytes
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._initialize_db()

    def _initialize_db(self) -> None:
        start = time.perf_counter()
        context = ErrorContext(
            operation="initialize_store",
            additional_data={"db_path": str(self.db_path)},
        )

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,  # access is serialized by self._lock
                isolation_level=None,  # autocommit; explicit BEGIN for multi-statement writes
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.executescript(_SCHEMA_SQL)

            row = self.conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self.conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,),
                )

            log_operation_success(
                logger=logger,
                operation="initialize_store",
                duration_ms=(time.perf_counter() - start) * 1000,
                context=context,
            )
        except (sqlite3.Error, OSError) as e:
            error = InfrastructureError(
                code=ErrorCode.STORAGE_ERROR,
                message=f"Failed to initialize SQLite store: {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error, operation="initialize_store")
            raise error from e

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise InfrastructureError(
                code=ErrorCode.STORAGE_CLOSED,
                message="SQLite store connection is closed",
                context=ErrorContext(additional_data={"db_path": str(self.db_path)}),
            )
        return self.conn

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection) -> Generator[None, None, None]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise

    def used_bytes(self) -> int:
        """Summed size of every stored key and value."""
        with self._lock:
            row = (
                self._connection()
                .execute(f"SELECT COALESCE(SUM(size), 0) FROM {StorageConfig.TABLE_NAME}")
                .fetchone()
            )
        return int(row[0])

    def set_raw(self, key: str, value: str) -> None:
        required = self.size_of(key, value)
        with self._lock:
            conn = self._connection()
            try:
                with self._transaction(conn):
                    if self.max_bytes is not None:
                        self._check_quota(conn, key, required)
                    conn.execute(
                        f"""
                        INSERT OR REPLACE INTO {StorageConfig.TABLE_NAME}
                            (key, value, size, updated_at)
                        VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                        """,
                        (key, value, required),
                    )
            except sqlite3.Error as e:
                raise translate_sqlite_error(e, key, "set_raw") from e

    def _check_quota(self, conn: sqlite3.Connection, key: str, required: int) -> None:
        used = conn.execute(
            f"SELECT COALESCE(SUM(size), 0) FROM {StorageConfig.TABLE_NAME} WHERE key != ?",
            (key,),
        ).fetchone()[0]
        if used + required > self.max_bytes:  # type: ignore[operator]
            raise StorageFullError(
                ErrorCode.STORAGE_FULL,
                f"Storage quota of {self.max_bytes} bytes exceeded "
                f"writing key '{key}' ({required} bytes)",
                ErrorContext(
                    operation="set_raw",
                    additional_data={"key": key, "used_bytes": used, "required_bytes": required},
                ),
            )

    def get_raw(self, key: str) -> str | None:
        with self._lock:
            try:
                row = (
                    self._connection()
                    .execute(
                        f"SELECT value FROM {StorageConfig.TABLE_NAME} WHERE key = ?",
                        (key,),
                    )
                    .fetchone()
                )
            except sqlite3.Error as e:
                raise translate_sqlite_error(e, key, "get_raw") from e
        return row[0] if row else None

    def remove_raw(self, key: str) -> None:
        with self._lock:
            try:
                self._connection().execute(
                    f"DELETE FROM {StorageConfig.TABLE_NAME} WHERE key = ?",
                    (key,),
                )
            except sqlite3.Error as e:
                raise translate_sqlite_error(e, key, "remove_raw") from e

    def list_keys(self, prefix: str | None = None) -> list[str]:
        with self._lock:
            conn = self._connection()
            try:
                if prefix:
                    # substr comparison sidesteps LIKE wildcard escaping for '_' and '%'
                    cursor = conn.execute(
                        f"""
                        SELECT key FROM {StorageConfig.TABLE_NAME}
                        WHERE substr(key, 1, ?) = ?
                        ORDER BY key
                        """,
                        (len(prefix), prefix),
                    )
                else:
                    cursor = conn.execute(
                        f"SELECT key FROM {StorageConfig.TABLE_NAME} ORDER BY key",
                    )
                return [row[0] for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise translate_sqlite_error(e, prefix or "", "list_keys") from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.debug("Closed SQLite store connection: %s", self.db_path)
