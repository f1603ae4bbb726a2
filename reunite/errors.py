"""
Error taxonomy for the matching engine.

Every error carries a human message plus a details dict that the API layer
returns verbatim.
"""

from typing import Any, Optional


class ReuniteError(Exception):
    """Base exception for the matching engine."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ReuniteError):
    """Raised when a triggering item id does not resolve to a stored record."""

    status_code = 404


class ProviderError(ReuniteError):
    """Raised when the embedding endpoint fails or returns malformed data."""

    status_code = 502


class PersistenceError(ReuniteError):
    """Raised when a store read or write fails."""

    status_code = 503


class DeliveryError(ReuniteError):
    """Raised when a message could not be dispatched."""

    status_code = 502


class InvalidInputError(ReuniteError):
    """Raised when a caller passes a value the engine does not accept."""

    status_code = 400


class ConfigurationError(ReuniteError):
    """Raised when configuration is invalid."""

    pass
