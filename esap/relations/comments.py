"""
CommentStore - threaded comments on content.

A comment with a parent_id is a reply. Replies must point at a comment on the
same content item. The author is always the calling identity, never a field
taken from the request body.
"""

from __future__ import annotations

import logging

from esap.auth.context import Identity
from esap.config import get_settings
from esap.core.errors import NotFound, ValidationError
from esap.core.models import Comment, CommentThread
from esap.moderation.catalog import load_content
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class CommentStore:
    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self.list_limit = get_settings().list_limit

    async def add(
        self,
        identity: Identity,
        content_id: str,
        text: str,
        parent_id: str | None = None,
    ) -> Comment:
        text = (text or "").strip()
        if not content_id or not text:
            raise ValidationError("content_id and text are required")

        await load_content(self.storage, content_id, viewer=identity)

        if parent_id:
            parent = await self.storage.get(Collections.COMMENTS, parent_id)
            if parent is None or parent["content_id"] != content_id:
                raise NotFound("Parent comment not found")

        comment = Comment(
            content_id=content_id,
            user_id=identity.id,
            text=text,
            parent_id=parent_id or None,
        )
        await self.storage.save(Collections.COMMENTS, comment.id, comment.model_dump())
        logger.debug(f"Comment {comment.id} on {content_id} by {identity.id}")
        return comment

    async def thread(self, content_id: str, viewer: Identity | None = None) -> list[CommentThread]:
        """Top-level comments oldest first, each with its replies nested."""
        if not content_id:
            raise ValidationError("Missing content_id parameter")
        await load_content(self.storage, content_id, viewer=viewer)

        docs = await self.storage.query(Collections.COMMENTS, {"content_id": content_id}, limit=self.list_limit)
        docs.sort(key=lambda d: d["created_at"])

        emails: dict[str, str | None] = {}
        nodes: dict[str, CommentThread] = {}
        for doc in docs:
            user_id = doc["user_id"]
            if user_id not in emails:
                user = await self.storage.get(Collections.USERS, user_id)
                emails[user_id] = user["email"] if user else None
            nodes[doc["id"]] = CommentThread.model_validate({**doc, "author_email": emails[user_id]})

        roots = []
        for node in nodes.values():
            parent = nodes.get(node.parent_id) if node.parent_id else None
            if parent is not None:
                parent.replies.append(node)
            else:
                roots.append(node)
        return roots

    async def counts(self, content_ids: list[str], viewer: Identity | None = None) -> dict[str, int]:
        """Comment count per requested id; missing or hidden items report zero."""
        ids = [i for i in content_ids if i]
        if not ids:
            raise ValidationError("Missing content_ids")

        result = {}
        for content_id in ids:
            try:
                await load_content(self.storage, content_id, viewer=viewer)
            except NotFound:
                result[content_id] = 0
                continue
            docs = await self.storage.query(
                Collections.COMMENTS, {"content_id": content_id}, limit=self.list_limit
            )
            result[content_id] = len(docs)
        return result
