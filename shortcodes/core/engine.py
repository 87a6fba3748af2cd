"""Code assignment engine.

``CodeAssigner`` is the only component allowed to create mappings. It holds
no state of its own beyond the injected store and the code window; all
locking and transaction discipline belongs to the store.
"""

from __future__ import annotations

from shortcodes.core.codec import MAX_CODE_LENGTH, MIN_CODE_LENGTH, encode, is_valid_code, max_ordinal
from shortcodes.core.errors import (
    CapacityExhaustedError,
    EmptyValueError,
    InternalError,
    InvalidCodeError,
    InvalidValueError,
    NotFoundError,
)
from shortcodes.storage.kv import MappingStore


class CodeAssigner:
    def __init__(self, store: MappingStore, *, max_code_length: int = MAX_CODE_LENGTH) -> None:
        if max_code_length < MIN_CODE_LENGTH:
            raise ValueError(f"max_code_length must be at least {MIN_CODE_LENGTH}")
        self.store = store
        self.max_code_length = max_code_length

    @property
    def capacity(self) -> int:
        """Highest ordinal that still yields an assignable code."""
        return max_ordinal(self.max_code_length)

    def _code_for(self, ordinal: int) -> str:
        code = encode(ordinal)
        if len(code) > self.max_code_length:
            raise CapacityExhaustedError(
                f"short code space exhausted (max {self.max_code_length} base62 chars)"
            )
        return code

    def assign(self, value: str) -> str:
        """Return the code for ``value``, creating the mapping on first submission."""
        if not isinstance(value, str) or not value:
            raise EmptyValueError("value is empty")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InvalidValueError("value is not valid UTF-8 text") from exc

        # one retry: a lost insert race means the winner has already committed
        for _ in range(2):
            code = self.store.find_code(value)
            if code is not None:
                return code
            code = self.store.insert_mapping(value, self._code_for)
            if code is not None:
                return code
        raise InternalError(f"value conflicted on insert but no mapping is visible (len={len(value)})")

    def resolve(self, code: str) -> str:
        if not isinstance(code, str) or not MIN_CODE_LENGTH <= len(code) <= self.max_code_length:
            raise InvalidCodeError(f"code length must be {MIN_CODE_LENGTH}..{self.max_code_length}")
        if not is_valid_code(code, self.max_code_length):
            raise InvalidCodeError("code contains invalid characters")
        value = self.store.find_value(code)
        if value is None:
            raise NotFoundError("not found")
        return value
