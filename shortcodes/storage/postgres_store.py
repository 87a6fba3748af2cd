"""PostgreSQL-backed mapping store."""

from __future__ import annotations

import re
from typing import Any, Callable, TypeVar

from shortcodes.core.errors import CodeCollisionError, StorageError
from shortcodes.storage.kv import CodeFactory, MappingStore
from shortcodes.util.logger import logger

try:
    import psycopg
except Exception:  # pragma: no cover - optional dependency
    psycopg = None


T = TypeVar("T")


class PostgresMappingStore(MappingStore):
    """Mappings in ``{schema}.mappings`` with a one-row counter table.

    A ``SERIAL`` column would hand out ordinals that survive a rollback, so the
    counter lives in ``{schema}.mapping_sequence`` and is bumped with
    ``UPDATE ... RETURNING`` inside the same transaction as the insert. The row
    lock on the counter serializes concurrent writers.
    """

    def __init__(self, *, dsn: str, schema: str = "public") -> None:
        if psycopg is None:  # pragma: no cover - optional dependency
            raise RuntimeError("psycopg package is not installed, cannot use PostgresMappingStore")
        if not dsn.strip():
            raise RuntimeError("postgres dsn is empty")
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", schema):
            raise RuntimeError("postgres schema contains invalid characters")

        self.dsn = dsn
        self.schema = schema
        self._mapping_table = f"{schema}.mappings"
        self._sequence_table = f"{schema}.mapping_sequence"

        self._guard(self._init_db)
        logger.info("postgres store initialized schema=%s", schema)

    def _connect(self):
        return psycopg.connect(self.dsn)

    def _guard(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except psycopg.Error as exc:
            raise StorageError(f"postgres operation failed: {exc}") from exc

    def _init_db(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._mapping_table} (
                      ordinal BIGINT PRIMARY KEY,
                      code TEXT NOT NULL UNIQUE,
                      value TEXT NOT NULL UNIQUE,
                      created_at BIGINT NOT NULL DEFAULT EXTRACT(EPOCH FROM now())::BIGINT
                    )
                    """
                )
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._sequence_table} (
                      id SMALLINT PRIMARY KEY CHECK (id = 1),
                      last_ordinal BIGINT NOT NULL
                    )
                    """
                )
                cur.execute(
                    f"""
                    INSERT INTO {self._sequence_table} (id, last_ordinal)
                    SELECT 1, COALESCE(MAX(ordinal), 0) FROM {self._mapping_table}
                    ON CONFLICT (id) DO NOTHING
                    """
                )
            conn.commit()

    def _fetch_scalar(self, query: str, params: tuple[Any, ...]) -> Any:
        def _read() -> Any:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    row = cur.fetchone()
            return row[0] if row else None

        return self._guard(_read)

    def find_code(self, value: str) -> str | None:
        return self._fetch_scalar(f"SELECT code FROM {self._mapping_table} WHERE value = %s", (value,))

    def find_value(self, code: str) -> str | None:
        return self._fetch_scalar(f"SELECT value FROM {self._mapping_table} WHERE code = %s", (code,))

    def insert_mapping(self, value: str, make_code: CodeFactory) -> str | None:
        def _insert() -> str | None:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        UPDATE {self._sequence_table}
                        SET last_ordinal = last_ordinal + 1
                        WHERE id = 1
                        RETURNING last_ordinal
                        """
                    )
                    ordinal = int(cur.fetchone()[0])
                    # raising here leaves the connection block and rolls the counter back
                    code = make_code(ordinal)
                    try:
                        cur.execute(
                            f"""
                            INSERT INTO {self._mapping_table} (ordinal, code, value)
                            VALUES (%s, %s, %s)
                            ON CONFLICT (value) DO NOTHING
                            RETURNING ordinal
                            """,
                            (ordinal, code, value),
                        )
                    except psycopg.errors.UniqueViolation as exc:
                        raise CodeCollisionError(f"code {code!r} for ordinal {ordinal} is already taken") from exc
                    inserted = cur.fetchone()
                if inserted is None:
                    conn.rollback()
                    return None
                conn.commit()
                return code

        return self._guard(_insert)

    def count_mappings(self) -> int:
        return int(self._fetch_scalar(f"SELECT COUNT(*) FROM {self._mapping_table}", ()) or 0)
