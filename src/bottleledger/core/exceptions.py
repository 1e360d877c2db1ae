"""
Exception hierarchy for bottleledger.

All package-specific exceptions inherit from BottleLedgerError for easy catching.
"""

from __future__ import annotations

from typing import Any


class BottleLedgerError(Exception):
    """
    Base exception for all bottleledger errors.

    Catch this to handle any ledger-related exception.

    Example:
        >>> try:
        ...     await ledger.delete(42)
        ... except BottleLedgerError as e:
        ...     print(f"Ledger error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(BottleLedgerError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Configuration values fail validation
    - An unknown storage backend is requested
    """

    pass


class InvalidInputError(BottleLedgerError):
    """
    Input was rejected before any persistence attempt.

    Raised when:
    - A delivery quantity is not a positive integer
    - A rate is not a positive, finite number
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class NotFoundError(BottleLedgerError):
    """
    Referenced delivery record does not exist.

    Raised when:
    - update/delete targets an id that was never assigned
    - update/delete targets an id that has already been deleted
    """

    def __init__(
        self,
        message: str,
        record_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.record_id = record_id


class StorageFailureError(BottleLedgerError):
    """
    Underlying storage engine failed.

    Raised when:
    - The database file cannot be opened, read or written
    - The Redis server is unreachable or rejects a command
    - Stored data is corrupt

    Never retried internally.
    """

    def __init__(
        self,
        message: str,
        backend: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.backend = backend
        self.operation = operation

    def __str__(self) -> str:
        prefix = f"[{self.backend}:{self.operation}] " if self.backend else ""
        return f"{prefix}{super().__str__()}"
