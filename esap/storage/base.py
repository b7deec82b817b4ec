"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → PostgreSQL) without changing application code.

The services never do read-then-write for anything that must be unique or
happen exactly once. They use the atomic primitives below instead:

- insert_if_absent  → idempotent relation adds, name-unique materialization
- update_if         → compare-and-set status transitions
- transaction       → multi-step units (approve + materialize, PIN supersede)

Production Integration Points:
- MetadataStorage → PostgreSQL (INSERT ... ON CONFLICT DO NOTHING,
  UPDATE ... WHERE status = ..., BEGIN/COMMIT)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Sequence

from pydantic import BaseModel


# =============================================================================
# Storage Interfaces
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured records (users, subjects, relations, PINs).

    Production Implementation: PostgreSQL
    Local Implementation: in-memory
    """

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Save (insert or replace) a document in a collection."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional equality filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """Partial update of a document."""
        pass

    # -------------------------------------------------------------------------
    # Atomic primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_if_absent(
        self,
        collection: str,
        id: str,
        data: dict[str, Any],
        unique_on: Sequence[str],
    ) -> tuple[dict[str, Any], bool]:
        """
        Insert unless a document with the same `unique_on` values exists.

        Returns (document, created). When a match exists the stored document
        is returned untouched and created is False.
        """
        pass

    @abstractmethod
    async def update_if(
        self,
        collection: str,
        id: str,
        expected: dict[str, Any],
        updates: dict[str, Any],
    ) -> dict[str, Any] | None:
        """
        Compare-and-set: apply `updates` only if every `expected` field matches.

        Returns the updated document, or None if the document is missing or
        any expected field differs.
        """
        pass

    @abstractmethod
    async def delete_where(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Delete every document matching the filters, returning them."""
        pass

    @abstractmethod
    async def update_where(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Apply updates to every matching document, returning the count."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[MetadataStorage]:
        """
        Run several operations as one atomic unit.

        Usage:
            async with storage.transaction() as tx:
                await tx.update_if(...)
                await tx.insert_if_absent(...)

        Changes made through `tx` are rolled back if the block raises.
        """
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection/table names."""

    USERS = "users"
    CATEGORIES = "categories"
    CATEGORY_REQUESTS = "category_requests"
    TAGS = "tags"
    TAG_REQUESTS = "tag_requests"
    CONTENT = "content"
    CONTENT_TAGS = "content_tags"
    BOOKMARKS = "bookmarks"
    READ_LATER = "read_later"
    VOTES = "votes"
    COMMENTS = "comments"
    PASSWORD_RESET_PINS = "password_reset_pins"
    NOTIFICATIONS = "notifications"
