# =============================================================================
# Relation API Routes
# =============================================================================
#
# Bookmarks / read-later (any signed-in member, own rows only):
#   GET    /bookmarks          - List
#   POST   /bookmarks          - Add (idempotent)
#   DELETE /bookmarks/{id}     - Remove
#   (same three under /read-later)
#
# Content tags (creators and admins change, anyone signed in reads):
#   GET    /content/{id}/tags
#   POST   /content/{id}/tags            - Attach (idempotent)
#   DELETE /content/{id}/tags/{tag_id}   - Detach
#
# Votes (members cast, anyone signed in reads):
#   POST   /vote                 - Cast (same type again removes it)
#   GET    /vote?content_id=     - Likes / dislikes for one item
#   GET    /vote/counts?content_ids=a,b
#
# Comments (members post, anyone signed in reads):
#   GET    /comments?content_id= - Threaded
#   POST   /comments             - Comment or reply (parent_id)
#   GET    /comments/counts?content_ids=a,b
#
# =============================================================================

from typing import Callable

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from esap.api.state import get_bookmarks, get_comments, get_content_tags, get_read_later, get_votes
from esap.auth.capabilities import AUTHORS, MEMBERS
from esap.auth.context import Identity
from esap.auth.policies import require, require_auth
from esap.relations.comments import CommentStore
from esap.relations.store import ContentTagStore, RelationStore
from esap.relations.votes import VoteStore

content_tags_router = APIRouter(prefix="/content", tags=["content"])
votes_router = APIRouter(prefix="/vote", tags=["votes"])
comments_router = APIRouter(prefix="/comments", tags=["comments"])


# =============================================================================
# Request Models
# =============================================================================

class AddRelationRequest(BaseModel):
    content_id: str = ""


class AddTagRequest(BaseModel):
    tag_id: str = ""


class VoteRequest(BaseModel):
    content_id: str = ""
    vote_type: str = ""


class CommentRequest(BaseModel):
    content_id: str = ""
    text: str = ""
    parent_id: str | None = None


# =============================================================================
# Bookmarks / read-later
# =============================================================================

def build_relation_router(
    prefix: str,
    get_store: Callable[[], RelationStore],
    added_message: str,
    removed_message: str,
) -> APIRouter:
    """Same three endpoints for every user -> content relation table."""
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("")
    async def list_relations(
        identity: Identity = Depends(require(*MEMBERS)),
        store: RelationStore = Depends(get_store),
    ):
        return {"success": True, "items": await store.list(identity.id)}

    @router.post("", status_code=201)
    async def add_relation(
        data: AddRelationRequest,
        identity: Identity = Depends(require(*MEMBERS)),
        store: RelationStore = Depends(get_store),
    ):
        relation = await store.add(identity, data.content_id)
        return {"success": True, "message": added_message, "item": relation}

    @router.delete("/{relation_id}")
    async def remove_relation(
        relation_id: str,
        identity: Identity = Depends(require(*MEMBERS)),
        store: RelationStore = Depends(get_store),
    ):
        await store.remove(relation_id, identity.id)
        return {"success": True, "message": removed_message}

    return router


bookmarks_router = build_relation_router(
    "/bookmarks", get_bookmarks, "Bookmark added", "Bookmark removed"
)
read_later_router = build_relation_router(
    "/read-later", get_read_later, "Saved for later", "Removed from read later"
)


# =============================================================================
# Content tags
# =============================================================================

@content_tags_router.get("/{content_id}/tags")
async def list_content_tags(
    content_id: str,
    identity: Identity = Depends(require_auth()),
    store: ContentTagStore = Depends(get_content_tags),
):
    return {"success": True, "tags": await store.list_tags(content_id, viewer=identity)}


@content_tags_router.post("/{content_id}/tags", status_code=201)
async def add_content_tag(
    content_id: str,
    data: AddTagRequest,
    identity: Identity = Depends(require(*AUTHORS)),
    store: ContentTagStore = Depends(get_content_tags),
):
    tag = await store.add(identity, content_id, data.tag_id)
    return {"success": True, "message": "Tag added to content", "tag": tag}


@content_tags_router.delete("/{content_id}/tags/{tag_id}")
async def remove_content_tag(
    content_id: str,
    tag_id: str,
    identity: Identity = Depends(require(*AUTHORS)),
    store: ContentTagStore = Depends(get_content_tags),
):
    await store.remove(identity, content_id, tag_id)
    return {"success": True, "message": "Tag removed from content"}


# =============================================================================
# Votes
# =============================================================================

def split_ids(content_ids: str) -> list[str]:
    return [i.strip() for i in content_ids.split(",") if i.strip()]


@votes_router.post("")
async def cast_vote(
    data: VoteRequest,
    identity: Identity = Depends(require(*MEMBERS)),
    store: VoteStore = Depends(get_votes),
):
    outcome = await store.cast(identity, data.content_id, data.vote_type)
    return {"success": True, "message": outcome.message, "vote": outcome.vote}


@votes_router.get("")
async def get_votes_for_content(
    content_id: str = "",
    identity: Identity = Depends(require_auth()),
    store: VoteStore = Depends(get_votes),
):
    tally = await store.tally(content_id, viewer=identity)
    return {"success": True, **tally}


@votes_router.get("/counts")
async def get_vote_counts(
    content_ids: str = "",
    identity: Identity = Depends(require_auth()),
    store: VoteStore = Depends(get_votes),
):
    counts = await store.counts(split_ids(content_ids), viewer=identity)
    return {"success": True, "counts": counts}


# =============================================================================
# Comments
# =============================================================================

@comments_router.get("")
async def list_comments(
    content_id: str = "",
    identity: Identity = Depends(require_auth()),
    store: CommentStore = Depends(get_comments),
):
    return {"success": True, "comments": await store.thread(content_id, viewer=identity)}


@comments_router.post("", status_code=201)
async def add_comment(
    data: CommentRequest,
    identity: Identity = Depends(require(*MEMBERS)),
    store: CommentStore = Depends(get_comments),
):
    comment = await store.add(identity, data.content_id, data.text, parent_id=data.parent_id)
    return {"success": True, "comment": comment}


@comments_router.get("/counts")
async def get_comment_counts(
    content_ids: str = "",
    identity: Identity = Depends(require_auth()),
    store: CommentStore = Depends(get_comments),
):
    counts = await store.counts(split_ids(content_ids), viewer=identity)
    return {"success": True, "counts": counts}
