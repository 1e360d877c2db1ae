"""
Redis Storage Backend.

Durable storage on a Redis server, for deployments where several processes
on one host share the ledger.
"""

from __future__ import annotations

import json
import os
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from bottleledger.core.exceptions import StorageFailureError
from bottleledger.storage.base import (
    DocumentChange,
    StorageBackend,
    register_storage_backend,
    storage_errors,
)

_ERRORS = (RedisError, OSError, json.JSONDecodeError)


class RedisStorage(StorageBackend):
    """
    Redis storage backend.

    Documents are JSON strings under ``{prefix}:{collection}:{key}``; each
    collection keeps a set index of its keys, and sequences are plain
    counters advanced with INCR. update() is an optimistic WATCH/MULTI
    transaction, retried when another client writes the key first.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "bottleledger",
    ) -> None:
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (or from BOTTLELEDGER_REDIS_URL env)
            prefix: Key prefix for all storage keys
        """
        self._redis_url = redis_url or os.environ.get(
            "BOTTLELEDGER_REDIS_URL",
            "redis://localhost:6379/0",
        )
        self._prefix = prefix
        self._client: redis.Redis | None = None

    def _get_client(self) -> redis.Redis:
        """Lazy-load Redis client."""
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _make_key(self, collection: str, key: str) -> str:
        return f"{self._prefix}:{collection}:{key}"

    def _index_key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}:_index"

    def _sequence_key(self, name: str) -> str:
        return f"{self._prefix}:_sequences:{name}"

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        with storage_errors(self.name, "save", *_ERRORS):
            client = self._get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(self._make_key(collection, key), json.dumps(data))
                pipe.sadd(self._index_key(collection), key)
                await pipe.execute()

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        with storage_errors(self.name, "get", *_ERRORS):
            raw = await self._get_client().get(self._make_key(collection, key))
            return json.loads(raw) if raw is not None else None

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        with storage_errors(self.name, "delete", *_ERRORS):
            client = self._get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(self._make_key(collection, key))
                pipe.srem(self._index_key(collection), key)
                deleted, _ = await pipe.execute()
            return deleted > 0

    async def query(self, collection: str) -> list[dict[str, Any]]:
        with storage_errors(self.name, "query", *_ERRORS):
            client = self._get_client()
            keys = sorted(await client.smembers(self._index_key(collection)))
            if not keys:
                return []
            values = await client.mget([self._make_key(collection, k) for k in keys])

            results = []
            for key, raw in zip(keys, values):
                if raw is None:
                    continue
                data = json.loads(raw)
                data["_key"] = key
                results.append(data)
            return results

    async def update(
        self,
        collection: str,
        key: str,
        change: DocumentChange,
    ) -> dict[str, Any] | None:
        redis_key = self._make_key(collection, key)
        with storage_errors(self.name, "update", *_ERRORS):
            client = self._get_client()
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        # Any write to the key after WATCH aborts the MULTI below
                        await pipe.watch(redis_key)
                        raw = await pipe.get(redis_key)
                        if raw is None:
                            return None
                        updated = change(json.loads(raw))
                        pipe.multi()
                        pipe.set(redis_key, json.dumps(updated))
                        await pipe.execute()
                        return updated
                    except WatchError:
                        continue

    async def count(self, collection: str) -> int:
        with storage_errors(self.name, "count", *_ERRORS):
            return int(await self._get_client().scard(self._index_key(collection)))

    async def clear(self, collection: str) -> int:
        with storage_errors(self.name, "clear", *_ERRORS):
            client = self._get_client()
            index_key = self._index_key(collection)
            keys = await client.smembers(index_key)
            if keys:
                await client.delete(*(self._make_key(collection, k) for k in keys), index_key)
            return len(keys)

    async def next_sequence(self, name: str) -> int:
        with storage_errors(self.name, "next_sequence", *_ERRORS):
            return int(await self._get_client().incr(self._sequence_key(name)))

    async def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            with storage_errors(self.name, "health_check", *_ERRORS):
                await self._get_client().ping()
        except StorageFailureError:
            return False
        return True

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


register_storage_backend("redis", RedisStorage)
