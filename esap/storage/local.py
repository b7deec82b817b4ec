"""
Local storage implementations for development and tests.

In-memory implementations that work without any external services.
Every public operation runs under one asyncio lock, so each call is atomic
with respect to concurrent requests on the same event loop. Transactions
hold the lock for the whole block and restore a snapshot on error.
"""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Sequence

from esap.storage.base import MetadataStorage, StorageProvider


def _matches(doc: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(doc.get(key) == value for key, value in filters.items())


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage for development."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Unlocked primitives (callers hold the lock)
    # -------------------------------------------------------------------------

    def _save(self, collection: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        doc = {
            **data,
            "_id": id,
            "_updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._data.setdefault(collection, {})[id] = doc
        return dict(doc)

    def _get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return dict(doc) if doc is not None else None

    def _delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    def _query(
        self,
        collection: str,
        filters: dict[str, Any] | None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        results = [
            dict(doc)
            for doc in self._data.get(collection, {}).values()
            if _matches(doc, filters)
        ]
        return results[offset:offset + limit]

    def _update(self, collection: str, id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        if doc is None:
            return None
        doc.update(updates)
        doc["_updated_at"] = datetime.now(timezone.utc).isoformat()
        return dict(doc)

    def _insert_if_absent(
        self,
        collection: str,
        id: str,
        data: dict[str, Any],
        unique_on: Sequence[str],
    ) -> tuple[dict[str, Any], bool]:
        key = {field: data.get(field) for field in unique_on}
        for doc in self._data.get(collection, {}).values():
            if _matches(doc, key):
                return dict(doc), False
        return self._save(collection, id, data), True

    def _update_if(
        self,
        collection: str,
        id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        if doc is None or not _matches(doc, expected):
            return None
        return self._update(collection, id, updates)

    def _delete_where(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        docs = self._data.get(collection, {})
        doomed = [id for id, doc in docs.items() if _matches(doc, filters)]
        return [docs.pop(id) for id in doomed]

    def _update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        ids = [id for id, doc in self._data.get(collection, {}).items() if _matches(doc, filters)]
        for id in ids:
            self._update(collection, id, updates)
        return len(ids)

    # -------------------------------------------------------------------------
    # MetadataStorage
    # -------------------------------------------------------------------------

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        async with self._lock:
            self._save(collection, id, data)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        async with self._lock:
            return self._get(collection, id)

    async def delete(self, collection: str, id: str) -> bool:
        async with self._lock:
            return self._delete(collection, id)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        async with self._lock:
            return self._query(collection, filters, limit, offset)

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        async with self._lock:
            return self._update(collection, id, updates) is not None

    async def insert_if_absent(
        self,
        collection: str,
        id: str,
        data: dict[str, Any],
        unique_on: Sequence[str],
    ) -> tuple[dict[str, Any], bool]:
        async with self._lock:
            return self._insert_if_absent(collection, id, data, unique_on)

    async def update_if(
        self,
        collection: str,
        id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        async with self._lock:
            return self._update_if(collection, id, expected, updates)

    async def delete_where(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        async with self._lock:
            return self._delete_where(collection, filters)

    async def update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        async with self._lock:
            return self._update_where(collection, filters, updates)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MetadataStorage]:
        async with self._lock:
            snapshot = copy.deepcopy(self._data)
            try:
                yield _InMemoryTransaction(self)
            except BaseException:
                self._data = snapshot
                raise


class _InMemoryTransaction(MetadataStorage):
    """View over the storage used inside `transaction()`; the lock is already held."""

    def __init__(self, storage: InMemoryMetadataStorage):
        self._storage = storage

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        self._storage._save(collection, id, data)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return self._storage._get(collection, id)

    async def delete(self, collection: str, id: str) -> bool:
        return self._storage._delete(collection, id)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return self._storage._query(collection, filters, limit, offset)

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        return self._storage._update(collection, id, updates) is not None

    async def insert_if_absent(
        self,
        collection: str,
        id: str,
        data: dict[str, Any],
        unique_on: Sequence[str],
    ) -> tuple[dict[str, Any], bool]:
        return self._storage._insert_if_absent(collection, id, data, unique_on)

    async def update_if(
        self,
        collection: str,
        id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        return self._storage._update_if(collection, id, expected, updates)

    async def delete_where(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        return self._storage._delete_where(collection, filters)

    async def update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        return self._storage._update_where(collection, filters, updates)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MetadataStorage]:
        # Nested transactions join the outer one
        yield self


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with local implementations."""
    return StorageProvider(metadata=InMemoryMetadataStorage())
