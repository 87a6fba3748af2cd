"""Base-62 codec between ordinals and short codes."""

from __future__ import annotations

from shortcodes.core.errors import InvalidSymbolError


ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)
MIN_CODE_LENGTH = 2
MAX_CODE_LENGTH = 5

_SYMBOL_TO_INT = {symbol: index for index, symbol in enumerate(ALPHABET)}


def encode(ordinal: int) -> str:
    """Render ``ordinal`` in base 62, left-padded with ``"0"`` to two characters.

    The codec does not cap the width; the assignment engine decides which
    lengths it is willing to hand out.
    """
    if isinstance(ordinal, bool) or not isinstance(ordinal, int):
        raise ValueError(f"ordinal must be an int, got {type(ordinal).__name__}")
    if ordinal < 0:
        raise ValueError("ordinal must be non-negative")

    digits: list[str] = []
    while ordinal:
        ordinal, remainder = divmod(ordinal, BASE)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits)).rjust(MIN_CODE_LENGTH, ALPHABET[0])


def decode(code: str) -> int:
    """Inverse of :func:`encode`. Length is not checked here."""
    ordinal = 0
    for symbol in code:
        try:
            ordinal = ordinal * BASE + _SYMBOL_TO_INT[symbol]
        except KeyError as exc:
            raise InvalidSymbolError(f"invalid base62 character: {symbol!r}") from exc
    return ordinal


def max_ordinal(width: int) -> int:
    """Largest ordinal whose encoding fits in ``width`` characters."""
    return BASE**width - 1


def is_valid_code(code: object, max_length: int = MAX_CODE_LENGTH) -> bool:
    if not isinstance(code, str):
        return False
    if not MIN_CODE_LENGTH <= len(code) <= max_length:
        return False
    return all(symbol in _SYMBOL_TO_INT for symbol in code)
