"""
ModerationStore - persistence for moderated subjects and their status.

Status changes only happen through `set_status`, a compare-and-set on the
current status, so two concurrent approvals of the same subject cannot both
succeed. Canonical entries are created with `materialize`, an
insert-if-absent on the uniqueness key.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

from pydantic import BaseModel

from esap.config import get_settings
from esap.core.utils import utc_now
from esap.storage.base import MetadataStorage


class ModerationStore:
    """Status-column view over MetadataStorage."""

    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self.list_limit = get_settings().list_limit

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ModerationStore]:
        """Yield a store whose operations commit or roll back together."""
        async with self.storage.transaction() as tx:
            yield ModerationStore(tx)

    async def get(self, collection: str, subject_id: str) -> dict[str, Any] | None:
        return await self.storage.get(collection, subject_id)

    async def create(self, collection: str, subject: BaseModel) -> dict[str, Any]:
        data = subject.model_dump()
        await self.storage.save(collection, data["id"], data)
        return data

    async def set_status(
        self,
        collection: str,
        subject_id: str,
        current: Any,
        target: Any,
        resolved_by: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Move a subject from `current` to `target`.

        Returns None if the subject is gone or its status is no longer `current`.
        """
        updates: dict[str, Any] = {"status": target}
        if resolved_by is not None:
            updates["resolved_by"] = resolved_by
            updates["resolved_at"] = utc_now()
        return await self.storage.update_if(collection, subject_id, {"status": current}, updates)

    async def materialize(
        self,
        collection: str,
        entity: BaseModel,
        unique_on: Sequence[str],
    ) -> tuple[dict[str, Any], bool]:
        """Insert the canonical entry unless one with the same key exists."""
        data = entity.model_dump()
        return await self.storage.insert_if_absent(collection, data["id"], data, unique_on)

    async def list_by_status(self, collection: str, status: Any) -> list[dict[str, Any]]:
        docs = await self.storage.query(collection, {"status": status}, limit=self.list_limit)
        return sorted(docs, key=lambda d: d.get("created_at") or utc_now())
