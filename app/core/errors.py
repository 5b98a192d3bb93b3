"""
Domain errors raised by the progression core.

Routes translate these into HTTP responses; nothing here knows about HTTP.
"""


class ProgressionError(Exception):
    """Base class for all progression failures."""


class ValidationError(ProgressionError):
    """Malformed input. Raised before any state is touched."""

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class StorageError(ProgressionError):
    """The store failed to read or write. The original exception is chained."""
