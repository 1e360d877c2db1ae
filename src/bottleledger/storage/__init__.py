"""
Storage backends for bottleledger.

Provides pluggable persistence for the delivery ledger and the rate preference.

Configuration via environment:
    BOTTLELEDGER_STORAGE_BACKEND=sqlite  # or 'memory', 'redis'
    BOTTLELEDGER_DB_PATH=deliveries.db
    BOTTLELEDGER_REDIS_URL=redis://localhost:6379/0

Example:
    >>> from bottleledger.storage import get_storage, SQLiteStorage
    >>>
    >>> # Get storage from environment
    >>> storage = get_storage()
    >>>
    >>> # Or create specific backend
    >>> storage = SQLiteStorage(path="deliveries.db")
"""

from __future__ import annotations

import os
from typing import Any

from bottleledger.core.exceptions import ConfigurationError
from bottleledger.storage.base import (
    StorageBackend,
    get_storage_backend,
    list_storage_backends,
    register_storage_backend,
)
from bottleledger.storage.memory import InMemoryStorage
from bottleledger.storage.redis import RedisStorage
from bottleledger.storage.sqlite import SQLiteStorage


def get_storage(backend_name: str | None = None, **options: Any) -> StorageBackend:
    """
    Get storage backend from environment or by name.

    Args:
        backend_name: Backend name, or None to read from BOTTLELEDGER_STORAGE_BACKEND env
        **options: Passed to the backend constructor

    Returns:
        StorageBackend instance

    Raises:
        ConfigurationError: If backend name is unknown
    """
    if backend_name is None:
        backend_name = os.environ.get("BOTTLELEDGER_STORAGE_BACKEND", "sqlite")

    backend_class = get_storage_backend(backend_name)

    if backend_class is None:
        available = list_storage_backends()
        raise ConfigurationError(
            f"Unknown storage backend: '{backend_name}'. Available: {', '.join(available)}"
        )

    return backend_class(**options)


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "SQLiteStorage",
    "get_storage",
    "get_storage_backend",
    "list_storage_backends",
    "register_storage_backend",
]
