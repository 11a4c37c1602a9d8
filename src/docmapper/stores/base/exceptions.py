"""Store-specific exceptions."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for store errors."""


class RequestError(StoreError):
    """Raised when the store rejects a request.

    Attributes:
        status_code: HTTP status returned by the store (0 if unknown).
        reason: Error type or message reported by the store.
    """

    def __init__(self, message: str, status_code: int = 0, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class VersionConflictError(RequestError):
    """Raised when a write carries a stale version token."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message, status_code=409, reason=reason)


class DocumentNotFoundError(RequestError):
    """Raised when a requested document does not exist."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message, status_code=404, reason=reason)


class QueryError(RequestError):
    """Raised when a search query is malformed or unsupported."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message, status_code=400, reason=reason)


class ConnectionError(StoreError):
    """Raised when the store cannot be reached or is not initialized."""


class ConfigurationError(StoreError):
    """Raised when store configuration is invalid."""
