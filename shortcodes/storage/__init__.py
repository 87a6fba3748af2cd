"""Storage backend selection helpers."""

from __future__ import annotations

from pathlib import Path

from shortcodes.config.settings import settings
from shortcodes.storage.kv import MappingStore
from shortcodes.storage.memory_store import MemoryMappingStore
from shortcodes.storage.postgres_store import PostgresMappingStore
from shortcodes.storage.redis_store import RedisMappingStore
from shortcodes.storage.sqlite_store import SqliteMappingStore


_MEMORY_URLS = {"sqlite::memory:", ":memory:", "memory:", "memory://"}
_MEMORY_PATHS = {":memory:", "file::memory:"}


def _sqlite_raw_path(database_url: str) -> str | None:
    if database_url.startswith("sqlite://"):
        raw = database_url[len("sqlite://"):]
    elif database_url.startswith("sqlite:"):
        # sqlite:./db.sqlite and sqlite:///abs/path.sqlite
        raw = database_url[len("sqlite:"):]
        if raw.startswith("//"):
            raw = raw[2:]
    else:
        return None
    return raw.split("?", 1)[0]


def is_memory_url(database_url: str) -> bool:
    url = database_url.strip()
    if url.lower() in _MEMORY_URLS:
        return True
    return _sqlite_raw_path(url) in _MEMORY_PATHS


def sqlite_path_from_url(database_url: str) -> Path | None:
    """Filesystem path of a SQLite URL; ``None`` for memory and non-SQLite URLs."""
    url = database_url.strip()
    if is_memory_url(url):
        return None
    raw = _sqlite_raw_path(url)
    if not raw:
        return None
    return Path(raw)


def create_store(database_url: str | None = None) -> MappingStore:
    url = (settings.database_url if database_url is None else database_url).strip()
    if is_memory_url(url):
        return MemoryMappingStore()

    scheme = url.split(":", 1)[0].lower()
    if scheme == "sqlite":
        path = sqlite_path_from_url(url)
        if path is None:
            raise ValueError(f"sqlite url has no file path: {url!r}")
        return SqliteMappingStore(db_path=str(path), busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    if scheme in {"postgres", "postgresql"}:
        return PostgresMappingStore(dsn=url, schema=settings.postgres_schema)
    if scheme in {"redis", "rediss"}:
        return RedisMappingStore(
            redis_url=url,
            key_prefix=settings.redis_key_prefix,
            watch_retries=settings.redis_watch_retries,
        )
    raise ValueError(f"unsupported database url scheme: {scheme!r}")
