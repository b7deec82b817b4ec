"""
Catalog - the canonical categories and tags, plus content drafts.

Admins can add categories/tags directly (approved immediately, names unique).
Everyone else goes through a request and the moderation workflow.
Creators write content as drafts; publishing goes through the workflow.
"""

from __future__ import annotations

import logging
from typing import Any

from esap.auth.capabilities import ADMIN_ONLY, AUTHORS
from esap.auth.context import Identity
from esap.auth.policies import AuthorizationGuard, get_guard
from esap.config import get_settings
from esap.core.errors import Conflict, NotFound, ValidationError
from esap.core.models import (
    Category,
    Content,
    ContentStatus,
    ContentType,
    RequestStatus,
    Tag,
)
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


def can_view(content: Content, viewer: Identity) -> bool:
    """Published content is public; anything else only to its author and admins."""
    return (
        content.status == ContentStatus.PUBLISHED
        or viewer.is_admin
        or viewer.owns(content.author_id)
    )


async def load_content(
    storage: MetadataStorage,
    content_id: str,
    viewer: Identity | None = None,
) -> Content:
    """
    Load a content item, hiding it from viewers who may not see it.

    Hidden and missing items raise the same NotFound, so callers cannot
    tell a draft exists. Without a viewer no visibility check is made.
    """
    doc = await storage.get(Collections.CONTENT, content_id)
    if doc is None:
        raise NotFound("Content not found")

    content = Content.model_validate(doc)
    if viewer is not None and not can_view(content, viewer):
        raise NotFound("Content not found")
    return content


class Catalog:
    """Categories, tags and content records outside of moderation."""

    def __init__(self, storage: MetadataStorage, guard: AuthorizationGuard | None = None):
        self.storage = storage
        self.list_limit = get_settings().list_limit
        self.guard = guard or get_guard()

    # =========================================================================
    # Categories / tags
    # =========================================================================

    async def create_category(self, actor: Identity, name: str, description: str | None = None) -> Category:
        self.guard.ensure(actor, ADMIN_ONLY)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")

        category = Category(name=name, description=description or None, created_by=actor.id)
        doc, created = await self.storage.insert_if_absent(
            Collections.CATEGORIES, category.id, category.model_dump(), unique_on=("name",)
        )
        if not created:
            raise Conflict(f"Category '{name}' already exists")

        logger.info(f"Category '{name}' created by {actor.id}")
        return Category.model_validate(doc)

    async def create_tag(self, actor: Identity, name: str) -> Tag:
        self.guard.ensure(actor, ADMIN_ONLY)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")

        tag = Tag(name=name, created_by=actor.id)
        doc, created = await self.storage.insert_if_absent(
            Collections.TAGS, tag.id, tag.model_dump(), unique_on=("name",)
        )
        if not created:
            raise Conflict(f"Tag '{name}' already exists")

        logger.info(f"Tag '{name}' created by {actor.id}")
        return Tag.model_validate(doc)

    async def list_categories(self) -> list[Category]:
        docs = await self.storage.query(
            Collections.CATEGORIES, {"status": RequestStatus.APPROVED}, limit=self.list_limit
        )
        return sorted((Category.model_validate(d) for d in docs), key=lambda c: c.name.lower())

    async def list_tags(self) -> list[Tag]:
        docs = await self.storage.query(Collections.TAGS, {"status": RequestStatus.APPROVED}, limit=self.list_limit)
        return sorted((Tag.model_validate(d) for d in docs), key=lambda t: t.name.lower())

    # =========================================================================
    # Content
    # =========================================================================

    async def create_content(
        self,
        actor: Identity,
        title: str,
        body: str | None = None,
        content_type: ContentType | str = ContentType.POST,
        category_id: str | None = None,
        description: str | None = None,
    ) -> Content:
        """Create a draft owned by the caller."""
        self.guard.ensure(actor, AUTHORS)

        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        try:
            content_type = ContentType(content_type)
        except ValueError:
            raise ValidationError(f"Unknown content type: {content_type}")

        if category_id is not None:
            category = await self.storage.get(Collections.CATEGORIES, category_id)
            if category is None:
                raise NotFound("Category not found")

        content = Content(
            title=title,
            description=description,
            body=body,
            content_type=content_type,
            author_id=actor.id,
            category_id=category_id,
        )
        await self.storage.save(Collections.CONTENT, content.id, content.model_dump())
        logger.info(f"Draft {content.id} created by {actor.id}")
        return content

    async def get_content(self, content_id: str, viewer: Identity | None = None) -> Content:
        """
        Load one content item.

        With a viewer, unpublished items are only visible to their author and
        to admins; everyone else gets NotFound.
        """
        return await load_content(self.storage, content_id, viewer)

    async def list_content(
        self,
        author_id: str | None = None,
        status: ContentStatus | str | None = None,
    ) -> list[Content]:
        filters: dict[str, Any] = {}
        if author_id:
            filters["author_id"] = author_id
        if status:
            try:
                filters["status"] = ContentStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown status: {status}")
        docs = await self.storage.query(Collections.CONTENT, filters, limit=self.list_limit)
        return sorted((Content.model_validate(d) for d in docs), key=lambda c: c.created_at, reverse=True)
