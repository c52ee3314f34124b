"""Structured error types for tagindex."""

from __future__ import annotations


class TagIndexError(Exception):
    """Base error for all tagindex errors."""


class ValidationError(TagIndexError):
    """Raised when caller input is malformed or missing (never retried)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class StorageBackendError(TagIndexError):
    """Raised when backend storage operations fail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage backend error during {operation}: {detail}")


class StoreUnavailableError(StorageBackendError):
    """Raised when a store call fails as a whole (network, permissions, missing table)."""


class StoreThrottledError(StorageBackendError):
    """Raised when a store call is rejected outright because of throughput limits."""


class SaveIncompleteError(TagIndexError):
    """Raised when unprocessed writes remain after batch retries are exhausted.

    Nothing about the record may be assumed durably written.
    """

    def __init__(self, record_id: str | None, unprocessed_count: int) -> None:
        self.record_id = record_id
        self.unprocessed_count = unprocessed_count
        super().__init__(
            f"Save of record '{record_id}' incomplete: "
            f"{unprocessed_count} write(s) still unprocessed after retries"
        )
