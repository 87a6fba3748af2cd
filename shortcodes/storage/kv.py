"""Store abstraction for value <-> code mappings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable


CodeFactory = Callable[[int], str]


class MappingStore(ABC):
    @abstractmethod
    def find_code(self, value: str) -> str | None:
        pass

    @abstractmethod
    def find_value(self, code: str) -> str | None:
        pass

    @abstractmethod
    def insert_mapping(self, value: str, make_code: CodeFactory) -> str | None:
        """Reserve the next ordinal and persist ``(ordinal, value, code)`` in one transaction.

        ``make_code`` runs inside the transaction; if it raises, the reservation
        is rolled back and the error propagates. Returns ``None`` without
        consuming an ordinal when ``value`` is already stored.
        """
        pass

    @abstractmethod
    def count_mappings(self) -> int:
        pass
