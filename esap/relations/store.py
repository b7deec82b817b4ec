"""
RelationStore - idempotent many-to-many links.

Bookmarks and read-later entries link a user to a content item; content-tag
links join content to tags. Each pair exists at most once:

- add() is insert-if-absent on the pair, so repeating it returns the row
  created the first time instead of failing or duplicating
- remove() for user relations matches on id AND owner, so guessing another
  user's relation id yields NotFound rather than deleting it

Links can only be made to content the caller is allowed to see. Drafts and
rejected items of other authors are reported as missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from esap.auth.context import Identity
from esap.config import get_settings
from esap.core.errors import Forbidden, NotFound, ValidationError
from esap.core.models import Content, ContentTag, Relation, Tag
from esap.moderation.catalog import load_content
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationKind:
    """A user → content relation table."""

    name: str
    collection: str
    not_found_message: str


BOOKMARKS = RelationKind(
    name="bookmark",
    collection=Collections.BOOKMARKS,
    not_found_message="Bookmark not found",
)

READ_LATER = RelationKind(
    name="read_later",
    collection=Collections.READ_LATER,
    not_found_message="Read-later item not found",
)


# =============================================================================
# User relations (bookmarks, read-later)
# =============================================================================


class RelationStore:
    """Owner-scoped user → content links of one kind."""

    def __init__(self, storage: MetadataStorage, kind: RelationKind):
        self.storage = storage
        self.kind = kind
        self.list_limit = get_settings().list_limit

    async def add(self, identity: Identity, content_id: str) -> Relation:
        """Link the caller to content; returns the existing row if already linked."""
        if not content_id:
            raise ValidationError("content_id is required")
        await load_content(self.storage, content_id, viewer=identity)

        relation = Relation(user_id=identity.id, content_id=content_id)
        doc, created = await self.storage.insert_if_absent(
            self.kind.collection,
            relation.id,
            relation.model_dump(),
            unique_on=("user_id", "content_id"),
        )
        if created:
            logger.debug(f"{self.kind.name} {relation.id}: {identity.id} -> {content_id}")
        return Relation.model_validate(doc)

    async def remove(self, relation_id: str, owner_id: str) -> bool:
        """Delete the caller's relation; NotFound if it is missing or not theirs."""
        deleted = await self.storage.delete_where(
            self.kind.collection, {"id": relation_id, "user_id": owner_id}
        )
        if not deleted:
            raise NotFound(self.kind.not_found_message)
        return True

    async def list(self, user_id: str) -> list[Relation]:
        docs = await self.storage.query(self.kind.collection, {"user_id": user_id}, limit=self.list_limit)
        return sorted((Relation.model_validate(d) for d in docs), key=lambda r: r.created_at, reverse=True)


# =============================================================================
# Content ↔ tag links
# =============================================================================


class ContentTagStore:
    """
    Links between content items and tags.

    Only the content's author or an admin may change its tags. Reading them
    follows the content's visibility.
    """

    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self.list_limit = get_settings().list_limit

    @staticmethod
    async def _editable(storage: MetadataStorage, identity: Identity, content_id: str) -> Content:
        content = await load_content(storage, content_id, viewer=identity)
        if not (identity.is_admin or identity.owns(content.author_id)):
            raise Forbidden("You can only tag your own content")
        return content

    async def add(self, identity: Identity, content_id: str, tag_id: str) -> Tag:
        """Attach a tag to content (no-op if already attached). Returns the tag."""
        if not tag_id:
            raise ValidationError("tag_id is required")
        await self._editable(self.storage, identity, content_id)

        tag_doc = await self.storage.get(Collections.TAGS, tag_id)
        if tag_doc is None:
            raise NotFound("Tag not found")

        link = ContentTag(content_id=content_id, tag_id=tag_id)
        await self.storage.insert_if_absent(
            Collections.CONTENT_TAGS,
            link.id,
            link.model_dump(),
            unique_on=("content_id", "tag_id"),
        )
        return Tag.model_validate(tag_doc)

    async def remove(self, identity: Identity, content_id: str, tag_id: str) -> bool:
        """
        Detach a tag from content.

        Raises NotFound("Content not found") or NotFound("Association not found").
        """
        async with self.storage.transaction() as tx:
            await self._editable(tx, identity, content_id)
            deleted = await tx.delete_where(
                Collections.CONTENT_TAGS, {"content_id": content_id, "tag_id": tag_id}
            )
        if not deleted:
            raise NotFound("Association not found")
        return True

    async def list_tags(self, content_id: str, viewer: Identity | None = None) -> list[Tag]:
        await load_content(self.storage, content_id, viewer=viewer)
        links = await self.storage.query(
            Collections.CONTENT_TAGS, {"content_id": content_id}, limit=self.list_limit
        )

        tags = []
        for link in links:
            doc = await self.storage.get(Collections.TAGS, link["tag_id"])
            if doc is not None:
                tags.append(Tag.model_validate(doc))
        return sorted(tags, key=lambda t: t.name.lower())
