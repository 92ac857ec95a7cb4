"""Exception hierarchy for redash-sync.

- ``ConfigurationError``: missing or invalid settings, fatal at startup.
- ``TransportError``: Redash unreachable or returned a non-success status.
- ``StoreError``: the local query mirror could not be read or written.
- ``MalformedRecordError``: a remote entry failed validation.
"""

from __future__ import annotations


class RedashSyncError(Exception):
    """Base class for all redash-sync errors."""


class ConfigurationError(RedashSyncError, ValueError):
    """Required configuration is missing or invalid."""


class TransportError(RedashSyncError):
    """A request to the Redash API failed.

    Attributes:
        status_code: HTTP status code, or ``None`` when the request never
            produced a response (connection refused, timeout, ...).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreError(RedashSyncError):
    """Reading or writing the local mirror failed.

    Attributes:
        query_id: Identifier of the query being read or written.
        operation: Short description of the failed operation.
    """

    def __init__(self, query_id: int | str, operation: str, cause: Exception) -> None:
        super().__init__(f"Query {query_id}: {operation} failed: {cause}")
        self.query_id = query_id
        self.operation = operation


class MalformedRecordError(RedashSyncError):
    """A remote query entry could not be validated."""

    def __init__(self, raw_id: object, reason: str) -> None:
        super().__init__(f"Malformed query entry (id={raw_id!r}): {reason}")
        self.raw_id = raw_id
