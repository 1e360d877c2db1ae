"""
Abstract Storage Backend for bottleledger.

Provides the pluggable persistence layer used by the delivery and preference stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from bottleledger.core.exceptions import StorageFailureError
from bottleledger.core.logging import get_logger

logger = get_logger("storage")

# Receives a copy of the stored document and returns its replacement
DocumentChange = Callable[[dict[str, Any]], dict[str, Any]]


class StorageBackend(ABC):
    """
    Document store contract shared by every persistence engine.

    Documents are JSON-serializable dicts grouped into named collections and
    addressed by string keys. Backends also keep named monotonic sequences for
    id assignment. Engine errors surface as StorageFailureError.

    Each method is atomic on its own, also against other handles on the same
    database. Callers needing read-modify-write go through update().
    """

    name: str = "abstract"

    @abstractmethod
    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        """
        Write a document, replacing whatever was stored under the key.

        Args:
            collection: Collection the document belongs to
            key: Document key within the collection
            data: JSON-serializable document body
        """
        ...

    @abstractmethod
    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        """
        Read one document.

        Returns:
            A copy of the stored document, or None when the key is absent
        """
        ...

    @abstractmethod
    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        """Remove a document. Returns False when nothing was stored under the key."""
        ...

    @abstractmethod
    async def query(self, collection: str) -> list[dict[str, Any]]:
        """
        List every document in a collection.

        Returns:
            Documents in a backend-defined order, each carrying its key under ``_key``
        """
        ...

    async def query_range(
        self,
        collection: str,
        field: str,
        low: int | float,
        high: int | float,
    ) -> list[dict[str, Any]]:
        """
        Documents whose numeric ``field`` lies in ``[low, high]``.

        Documents where the field is missing or not a number are skipped.
        Backends with an index on the field override this scan.
        """
        results = []
        for data in await self.query(collection):
            value = data.get(field)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            if low <= value <= high:
                results.append(data)
        return results

    @abstractmethod
    async def update(
        self,
        collection: str,
        key: str,
        change: DocumentChange,
    ) -> dict[str, Any] | None:
        """
        Atomically replace an existing document with ``change(current)``.

        No other write to the key can land between the read and the write,
        and a missing key is never created. ``change`` may be called more
        than once, so it must not have side effects.

        Returns:
            The document as written, or None when the key is absent
        """
        ...

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        ...

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """
        Drop every document in a collection and return how many were removed.

        Sequences are left untouched so ids are never reissued.
        """
        ...

    @abstractmethod
    async def next_sequence(self, name: str) -> int:
        """
        Atomically increment and return the named sequence.

        The first call for a name returns 1. Values are never reused.
        """
        ...

    async def health_check(self) -> bool:
        """Whether the engine is reachable. Always true for local backends."""
        return True

    async def close(self) -> None:
        """Release any engine resources held by the backend."""
        return None


@contextmanager
def storage_errors(
    backend: str,
    operation: str,
    *error_types: type[BaseException],
) -> Iterator[None]:
    """
    Translate engine exceptions into StorageFailureError.

    Example:
        >>> with storage_errors("sqlite", "save", sqlite3.Error):
        ...     conn.execute(...)
    """
    try:
        yield
    except error_types as e:
        logger.error(f"{backend} storage failed during {operation}: {e}")
        raise StorageFailureError(
            f"Storage operation '{operation}' failed: {e}",
            backend=backend,
            operation=operation,
            details={"error_type": type(e).__name__},
        ) from e


# Backends register themselves on import; get_storage resolves names here.
_BACKENDS: dict[str, type[StorageBackend]] = {}


def register_storage_backend(name: str, backend_class: type[StorageBackend]) -> None:
    """Make a backend class available to get_storage under ``name``."""
    _BACKENDS[name] = backend_class


def get_storage_backend(name: str) -> type[StorageBackend] | None:
    return _BACKENDS.get(name)


def list_storage_backends() -> list[str]:
    """Registered backend names, in registration order."""
    return list(_BACKENDS)
