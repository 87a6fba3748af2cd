"""In-process mapping store for tests and ephemeral runs."""

from __future__ import annotations

import threading

from shortcodes.core.errors import CodeCollisionError
from shortcodes.storage.kv import CodeFactory, MappingStore


class MemoryMappingStore(MappingStore):
    """Dict-backed store guarded by one lock.

    The counter is only atomic within this process; use a durable backend
    whenever more than one process shares the mappings.
    """

    def __init__(self, *, last_ordinal: int = 0) -> None:
        self._lock = threading.Lock()
        self._last_ordinal = last_ordinal
        self._code_by_value: dict[str, str] = {}
        self._value_by_code: dict[str, str] = {}

    def find_code(self, value: str) -> str | None:
        with self._lock:
            return self._code_by_value.get(value)

    def find_value(self, code: str) -> str | None:
        with self._lock:
            return self._value_by_code.get(code)

    def insert_mapping(self, value: str, make_code: CodeFactory) -> str | None:
        with self._lock:
            if value in self._code_by_value:
                return None
            ordinal = self._last_ordinal + 1
            code = make_code(ordinal)
            if code in self._value_by_code:
                raise CodeCollisionError(f"code {code!r} for ordinal {ordinal} is already taken")
            self._last_ordinal = ordinal
            self._code_by_value[value] = code
            self._value_by_code[code] = value
            return code

    def count_mappings(self) -> int:
        with self._lock:
            return len(self._code_by_value)
