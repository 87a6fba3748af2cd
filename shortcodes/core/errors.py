"""Project error hierarchy.

Every error carries the HTTP status the gateway answers with, so the adapter
needs a single exception handler.
"""


class ShortCodesError(Exception):
    """Base error."""

    status_code = 500


class InvalidValueError(ShortCodesError):
    """Raised when a submitted value cannot be stored as text."""

    status_code = 400


class EmptyValueError(InvalidValueError):
    """Raised when a submitted value is empty."""


class InvalidCodeError(ShortCodesError):
    """Raised when a code has the wrong length or foreign characters."""

    status_code = 400


class InvalidSymbolError(InvalidCodeError, ValueError):
    """Raised by the codec for a character outside the alphabet."""


class NotFoundError(ShortCodesError):
    """Raised when a well-formed code has no mapping."""

    status_code = 404


class CapacityExhaustedError(ShortCodesError):
    """Raised when the next ordinal no longer fits in the code window."""

    status_code = 507


class InternalError(ShortCodesError):
    """Raised for faults that cannot be attributed to caller input."""


class StorageError(InternalError):
    """Raised when the backing store fails."""


class CodeCollisionError(InternalError):
    """Raised when a freshly derived code is already taken."""
