"""
Core data models for the ESAP platform.

Users, the three moderated subject kinds (categories, tags, content),
category/tag requests, relation rows, votes and comments, reset PINs and
notifications.
Storage keeps these as plain dicts; `model_dump()` / `model_validate()`
convert at the service boundary.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from esap.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Platform-wide role carried in every session token."""

    ADMIN = "admin"          # Moderates everything, manages users
    CREATOR = "creator"      # Writes content, proposes categories/tags
    CONSUMER = "consumer"    # Reads, bookmarks, saves for later


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class SubjectKind(str, Enum):
    """Entity kinds that go through moderation."""

    CATEGORY = "category"
    TAG = "tag"
    CONTENT = "content"


class RequestStatus(str, Enum):
    """Status of a category/tag proposal (and of canonical entries)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    PUBLISHED = "published"
    REJECTED = "rejected"


class ContentType(str, Enum):
    POST = "post"
    MINDMAP = "mindmap"
    RESEARCH = "research"


class VoteType(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class NotificationType(str, Enum):
    APPROVAL = "approval"
    SYSTEM = "system"
    CONTENT = "content"


# =============================================================================
# Users
# =============================================================================


class User(BaseModel):
    """User stored in the database."""

    id: str = Field(default_factory=lambda: generate_id("user"))
    email: str
    password_hash: str
    role: Role = Role.CONSUMER
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class UserResponse(BaseModel):
    """User data returned to clients (no password hash)."""

    id: str
    email: str
    role: Role
    status: UserStatus
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            status=user.status,
            created_at=user.created_at,
        )


# =============================================================================
# Moderated subjects
# =============================================================================


class ModerationRequest(BaseModel):
    """
    A proposal for a new category or tag.

    Distinct from the canonical entry it may materialize: approving the
    request creates the entry only if no entry with that name exists yet.
    """

    id: str = Field(default_factory=lambda: generate_id("req"))
    subject_kind: SubjectKind
    requested_name: str
    description: str | None = None
    requester_id: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    resolved_by: str | None = None
    resolved_at: datetime | None = None


class Category(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("cat"))
    name: str
    description: str | None = None
    status: RequestStatus = RequestStatus.APPROVED
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class Tag(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("tag"))
    name: str
    status: RequestStatus = RequestStatus.APPROVED
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class Content(BaseModel):
    """A post, mindmap or research item. Moderated in place."""

    id: str = Field(default_factory=lambda: generate_id("content"))
    title: str
    description: str | None = None
    body: str | None = None
    content_type: ContentType = ContentType.POST
    status: ContentStatus = ContentStatus.DRAFT
    author_id: str
    category_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    resolved_by: str | None = None
    resolved_at: datetime | None = None


# =============================================================================
# Relations
# =============================================================================


class Relation(BaseModel):
    """A user's bookmark or read-later entry. Unique per (user_id, content_id)."""

    id: str = Field(default_factory=lambda: generate_id("rel"))
    user_id: str
    content_id: str
    created_at: datetime = Field(default_factory=utc_now)


class ContentTag(BaseModel):
    """Link between a content item and a tag. Unique per pair."""

    id: str = Field(default_factory=lambda: generate_id("ctag"))
    content_id: str
    tag_id: str
    created_at: datetime = Field(default_factory=utc_now)


class Vote(BaseModel):
    """A user's like or dislike of a content item. One per (user_id, content_id)."""

    id: str = Field(default_factory=lambda: generate_id("vote"))
    user_id: str
    content_id: str
    vote_type: VoteType = VoteType.LIKE
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Comment(BaseModel):
    """A comment on content; replies point at their parent via parent_id."""

    id: str = Field(default_factory=lambda: generate_id("comment"))
    content_id: str
    user_id: str
    text: str
    parent_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CommentThread(Comment):
    """A comment as returned to readers, with its author and nested replies."""

    author_email: str | None = None
    replies: list[CommentThread] = Field(default_factory=list)


# =============================================================================
# Password reset / notifications
# =============================================================================


class PasswordResetPin(BaseModel):
    email: str
    pin: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("notif"))
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.SYSTEM
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now)
