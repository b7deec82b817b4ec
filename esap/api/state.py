"""
Application state and the FastAPI dependencies that hand it to routes.

Everything is built once from a StorageProvider at startup (see the app
lifespan). Tests call `state.init()` with their own storage and mailer.
"""

from __future__ import annotations

from esap.auth.pins import PinMailer, PinVerifier
from esap.auth.users import UserStore
from esap.integrations.email import get_email_service
from esap.moderation import CATEGORY, CONTENT, TAG, Catalog, ModerationStore, ModerationWorkflow
from esap.relations import (
    BOOKMARKS,
    READ_LATER,
    CommentStore,
    ContentTagStore,
    RelationStore,
    VoteStore,
)
from esap.services import NotificationService
from esap.storage import StorageProvider


# =============================================================================
# App State
# =============================================================================


class AppState:
    """Application state - initialized at startup."""

    storage: StorageProvider
    users: UserStore
    pins: PinVerifier
    notifications: NotificationService
    catalog: Catalog
    category_requests: ModerationWorkflow
    tag_requests: ModerationWorkflow
    content_review: ModerationWorkflow
    bookmarks: RelationStore
    read_later: RelationStore
    content_tags: ContentTagStore
    votes: VoteStore
    comments: CommentStore

    def init(self, storage: StorageProvider, mailer: PinMailer | None = None) -> None:
        metadata = storage.metadata
        self.storage = storage

        self.users = UserStore(metadata)
        self.pins = PinVerifier(metadata, mailer or get_email_service())
        self.notifications = NotificationService(metadata)
        self.catalog = Catalog(metadata)

        moderation = ModerationStore(metadata)
        self.category_requests = ModerationWorkflow(CATEGORY, moderation, notifications=self.notifications)
        self.tag_requests = ModerationWorkflow(TAG, moderation, notifications=self.notifications)
        self.content_review = ModerationWorkflow(CONTENT, moderation, notifications=self.notifications)

        self.bookmarks = RelationStore(metadata, BOOKMARKS)
        self.read_later = RelationStore(metadata, READ_LATER)
        self.content_tags = ContentTagStore(metadata)
        self.votes = VoteStore(metadata)
        self.comments = CommentStore(metadata)


state = AppState()


# =============================================================================
# Dependencies
# =============================================================================


def get_users() -> UserStore:
    return state.users


def get_pins() -> PinVerifier:
    return state.pins


def get_notifications() -> NotificationService:
    return state.notifications


def get_catalog() -> Catalog:
    return state.catalog


def get_category_requests() -> ModerationWorkflow:
    return state.category_requests


def get_tag_requests() -> ModerationWorkflow:
    return state.tag_requests


def get_content_review() -> ModerationWorkflow:
    return state.content_review


def get_bookmarks() -> RelationStore:
    return state.bookmarks


def get_read_later() -> RelationStore:
    return state.read_later


def get_content_tags() -> ContentTagStore:
    return state.content_tags


def get_votes() -> VoteStore:
    return state.votes


def get_comments() -> CommentStore:
    return state.comments
