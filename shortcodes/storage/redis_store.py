"""Redis-backed mapping store."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from shortcodes.core.errors import CodeCollisionError, StorageError
from shortcodes.storage.kv import CodeFactory, MappingStore
from shortcodes.util.logger import logger

try:
    import redis
except Exception:  # pragma: no cover - optional dependency
    redis = None


T = TypeVar("T")


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class RedisMappingStore(MappingStore):
    """Two hashes plus a counter key, written together under ``WATCH``/``MULTI``.

    The counter is only advanced by the ``EXEC`` that also writes both hashes,
    so a failed ``make_code`` or a lost ``WATCH`` leaves nothing behind.
    """

    def __init__(self, *, redis_url: str, key_prefix: str = "shortcodes", watch_retries: int = 16) -> None:
        if redis is None:  # pragma: no cover - depends on optional package
            raise RuntimeError("redis package is not installed, cannot use RedisMappingStore")
        self.client = redis.Redis.from_url(redis_url, decode_responses=False)
        self.key_prefix = key_prefix.strip() or "shortcodes"
        self.watch_retries = max(1, int(watch_retries))
        logger.info("redis store initialized prefix=%s", self.key_prefix)

    @property
    def _seq_key(self) -> str:
        return f"{self.key_prefix}:seq"

    @property
    def _code_by_value_key(self) -> str:
        return f"{self.key_prefix}:code_by_value"

    @property
    def _value_by_code_key(self) -> str:
        return f"{self.key_prefix}:value_by_code"

    def _guard(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except redis.RedisError as exc:
            raise StorageError(f"redis operation failed: {exc}") from exc

    def find_code(self, value: str) -> str | None:
        raw = self._guard(lambda: self.client.hget(self._code_by_value_key, value))
        return _to_str(raw) if raw is not None else None

    def find_value(self, code: str) -> str | None:
        raw = self._guard(lambda: self.client.hget(self._value_by_code_key, code))
        return _to_str(raw) if raw is not None else None

    def _try_insert(self, value: str, make_code: CodeFactory) -> tuple[bool, str | None]:
        pipe = self.client.pipeline()
        try:
            pipe.watch(self._seq_key, self._code_by_value_key)
            if pipe.hexists(self._code_by_value_key, value):
                return True, None
            ordinal = int(pipe.get(self._seq_key) or 0) + 1
            code = make_code(ordinal)
            if pipe.hexists(self._value_by_code_key, code):
                raise CodeCollisionError(f"code {code!r} for ordinal {ordinal} is already taken")
            pipe.multi()
            pipe.set(self._seq_key, ordinal)
            pipe.hset(self._code_by_value_key, value, code)
            pipe.hset(self._value_by_code_key, code, value)
            pipe.execute()
            return True, code
        except redis.WatchError:
            return False, None
        finally:
            pipe.reset()

    def insert_mapping(self, value: str, make_code: CodeFactory) -> str | None:
        for attempt in range(self.watch_retries):
            done, code = self._guard(lambda: self._try_insert(value, make_code))
            if done:
                return code
            logger.debug("redis watch conflict, retrying attempt=%d", attempt + 1)
        raise StorageError(f"redis insert still conflicting after {self.watch_retries} attempts")

    def count_mappings(self) -> int:
        return int(self._guard(lambda: self.client.hlen(self._code_by_value_key)))
