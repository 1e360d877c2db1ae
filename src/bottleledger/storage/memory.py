"""
In-Memory Storage Backend.

Keeps all data in process memory. Suitable for tests and throwaway
sessions; nothing survives a restart.
"""

from __future__ import annotations

import threading
from copy import deepcopy
from typing import Any

from bottleledger.storage.base import DocumentChange, StorageBackend, register_storage_backend


class InMemoryStorage(StorageBackend):
    """
    In-memory storage backend.

    Stores all data in Python dicts guarded by a re-entrant lock, so it is
    safe to share across threads. No method awaits while holding the lock.
    """

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.RLock()

    def _ensure_collection(self, collection: str) -> dict[str, dict[str, Any]]:
        """Ensure collection exists and return it."""
        return self._data.setdefault(collection, {})

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        with self._lock:
            self._ensure_collection(collection)[key] = deepcopy(data)

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        with self._lock:
            data = self._ensure_collection(collection).get(key)
            return deepcopy(data) if data is not None else None

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        with self._lock:
            return self._ensure_collection(collection).pop(key, None) is not None

    async def query(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            results = []
            for key, data in self._ensure_collection(collection).items():
                result = deepcopy(data)
                result["_key"] = key
                results.append(result)
            return results

    async def update(
        self,
        collection: str,
        key: str,
        change: DocumentChange,
    ) -> dict[str, Any] | None:
        with self._lock:
            coll = self._ensure_collection(collection)
            if key not in coll:
                return None
            updated = change(deepcopy(coll[key]))
            coll[key] = deepcopy(updated)
            return updated

    async def count(self, collection: str) -> int:
        with self._lock:
            return len(self._ensure_collection(collection))

    async def clear(self, collection: str) -> int:
        with self._lock:
            coll = self._ensure_collection(collection)
            count = len(coll)
            coll.clear()
            return count

    async def next_sequence(self, name: str) -> int:
        with self._lock:
            value = self._sequences.get(name, 0) + 1
            self._sequences[name] = value
            return value


register_storage_backend("memory", InMemoryStorage)
