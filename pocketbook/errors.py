"""Error taxonomy surfaced to the GUI shell.

Each class also derives from the closest builtin so callers that only know
``ValueError``/``LookupError``/``RuntimeError`` keep working.
"""

from __future__ import annotations


class PocketbookError(Exception):
    """Base class for errors raised by pocketbook services."""


class NotConfiguredError(PocketbookError, RuntimeError):
    """No database path has been configured yet."""

    def __init__(self, message: str = "database is not configured") -> None:
        super().__init__(message)


class NotFoundError(PocketbookError, LookupError):
    """A referenced row or file does not exist."""


class ValidationError(PocketbookError, ValueError):
    """An identifier or argument failed a safety check."""


class ConstraintError(PocketbookError):
    """A uniqueness or foreign-key constraint rejected a write.

    The database driver's message is kept verbatim.
    """


class TransportError(PocketbookError):
    """The HTTP relay could not complete a request."""


__all__ = [
    "PocketbookError",
    "NotConfiguredError",
    "NotFoundError",
    "ValidationError",
    "ConstraintError",
    "TransportError",
]
