"""
VoteStore - likes and dislikes on content.

A user has at most one vote per content item. Casting a vote is a toggle:

- no vote yet            → the vote is added
- same type again        → the vote is removed
- the other type         → the vote switches to it

The whole decision runs in one storage transaction, so concurrent casts by
the same user never leave two rows behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from esap.auth.context import Identity
from esap.config import get_settings
from esap.core.errors import NotFound, ValidationError
from esap.core.models import Vote, VoteType
from esap.core.utils import utc_now
from esap.moderation.catalog import load_content
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


ADDED = "added"
UPDATED = "updated"
REMOVED = "removed"


@dataclass
class VoteOutcome:
    """Result of a cast. `vote` is None when the cast removed the vote."""

    action: str
    vote: Vote | None

    @property
    def message(self) -> str:
        return f"Vote {self.action}"


class VoteStore:
    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self.list_limit = get_settings().list_limit

    async def cast(self, identity: Identity, content_id: str, vote_type: VoteType | str) -> VoteOutcome:
        if not content_id or not vote_type:
            raise ValidationError("Missing content_id or vote_type")
        try:
            vote_type = VoteType(vote_type)
        except ValueError:
            raise ValidationError("Invalid vote type")

        vote = Vote(user_id=identity.id, content_id=content_id, vote_type=vote_type)

        async with self.storage.transaction() as tx:
            await load_content(tx, content_id, viewer=identity)

            doc, created = await tx.insert_if_absent(
                Collections.VOTES,
                vote.id,
                vote.model_dump(),
                unique_on=("user_id", "content_id"),
            )
            if created:
                outcome = VoteOutcome(ADDED, Vote.model_validate(doc))
            elif doc["vote_type"] == vote_type:
                await tx.delete_where(Collections.VOTES, {"id": doc["id"]})
                outcome = VoteOutcome(REMOVED, None)
            else:
                updated = await tx.update_if(
                    Collections.VOTES,
                    doc["id"],
                    expected={"vote_type": doc["vote_type"]},
                    updates={"vote_type": vote_type, "updated_at": utc_now()},
                )
                outcome = VoteOutcome(UPDATED, Vote.model_validate(updated))

        logger.debug(f"Vote {outcome.action}: {identity.id} -> {content_id} ({vote_type.value})")
        return outcome

    async def tally(self, content_id: str, viewer: Identity | None = None) -> dict[str, int]:
        """Likes and dislikes for one content item."""
        if not content_id:
            raise ValidationError("Missing content_id")
        await load_content(self.storage, content_id, viewer=viewer)
        return await self._count(content_id)

    async def counts(self, content_ids: list[str], viewer: Identity | None = None) -> dict[str, dict[str, int]]:
        """
        Likes and dislikes for several items at once.

        Every requested id is present in the result. Missing items and items
        hidden from the viewer report zero.
        """
        ids = [i for i in content_ids if i]
        if not ids:
            raise ValidationError("Missing content_ids")

        result = {}
        for content_id in ids:
            try:
                await load_content(self.storage, content_id, viewer=viewer)
            except NotFound:
                result[content_id] = {"likes": 0, "dislikes": 0}
                continue
            result[content_id] = await self._count(content_id)
        return result

    async def _count(self, content_id: str) -> dict[str, int]:
        docs = await self.storage.query(Collections.VOTES, {"content_id": content_id}, limit=self.list_limit)
        likes = sum(1 for d in docs if d["vote_type"] == VoteType.LIKE)
        return {"likes": likes, "dislikes": len(docs) - likes}
