"""SQLite-backed mapping store with concurrency optimizations."""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, TypeVar

from shortcodes.core.errors import CodeCollisionError, StorageError
from shortcodes.storage.kv import CodeFactory, MappingStore
from shortcodes.util.logger import logger


T = TypeVar("T")


class SqliteMappingStore(MappingStore):
    """Mappings in one SQLite table.

    ``AUTOINCREMENT`` is the ordinal sequence: the row is inserted first, its
    rowid is encoded, and the code is written back in the same ``BEGIN
    IMMEDIATE`` transaction. A rollback also rewinds ``sqlite_sequence``, so an
    aborted submission never burns an ordinal.
    """

    def __init__(self, db_path: str = "shortcodes.db", busy_timeout_ms: int = 5000) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout_ms = busy_timeout_ms

        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_ms / 1000, isolation_level=None)
        try:
            conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_db(self) -> None:
        def _create() -> None:
            with self._connect() as conn:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS mappings (
                      ordinal INTEGER PRIMARY KEY AUTOINCREMENT,
                      code TEXT UNIQUE,
                      value TEXT NOT NULL UNIQUE,
                      created_at INTEGER NOT NULL DEFAULT (strftime('%s','now'))
                    )
                    """
                )

        self._with_retry(_create)
        logger.info("sqlite store initialized path=%s", self.db_path)

    def _with_retry(self, fn: Callable[[], T], retries: int = 5) -> T:
        for attempt in range(retries):
            try:
                return fn()
            except sqlite3.OperationalError as exc:
                if "locked" not in str(exc).lower() or attempt == retries - 1:
                    raise StorageError(f"sqlite operation failed: {exc}") from exc
                logger.debug("sqlite locked, retrying attempt=%d path=%s", attempt + 1, self.db_path)
                time.sleep(0.01 * (attempt + 1))
            except sqlite3.Error as exc:
                raise StorageError(f"sqlite operation failed: {exc}") from exc
        raise RuntimeError("unreachable retry state")

    def find_code(self, value: str) -> str | None:
        def _read() -> tuple | None:
            with self._connect() as conn:
                return conn.execute(
                    "SELECT code FROM mappings WHERE value = ? AND code IS NOT NULL",
                    (value,),
                ).fetchone()

        row = self._with_retry(_read)
        return row[0] if row else None

    def find_value(self, code: str) -> str | None:
        def _read() -> tuple | None:
            with self._connect() as conn:
                return conn.execute("SELECT value FROM mappings WHERE code = ?", (code,)).fetchone()

        row = self._with_retry(_read)
        return row[0] if row else None

    def insert_mapping(self, value: str, make_code: CodeFactory) -> str | None:
        def _insert() -> str | None:
            with self._transaction() as conn:
                # an ignored upsert still bumps sqlite_sequence, so check under the write lock instead
                if conn.execute("SELECT 1 FROM mappings WHERE value = ?", (value,)).fetchone():
                    return None
                cursor = conn.execute("INSERT INTO mappings (value) VALUES (?)", (value,))
                ordinal = int(cursor.lastrowid)
                code = make_code(ordinal)
                try:
                    conn.execute("UPDATE mappings SET code = ? WHERE ordinal = ?", (code, ordinal))
                except sqlite3.IntegrityError as exc:
                    raise CodeCollisionError(f"code {code!r} for ordinal {ordinal} is already taken") from exc
                return code

        return self._with_retry(_insert)

    def count_mappings(self) -> int:
        def _count() -> int:
            with self._connect() as conn:
                row = conn.execute("SELECT COUNT(*) FROM mappings WHERE code IS NOT NULL").fetchone()
            return int(row[0])

        return self._with_retry(_count)
