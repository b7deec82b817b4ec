"""
Tests for the moderation workflow and the catalog.

Core principle: one state machine for categories, tags and content. Only
legal transitions go through, and approving a request never duplicates a
canonical entry.
"""

import asyncio

import pytest

from esap.config import get_settings
from esap.core.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from esap.core.models import ContentStatus, RequestStatus, SubjectKind
from esap.moderation import (
    CATEGORY,
    CONTENT,
    SUBJECTS,
    TAG,
    Catalog,
    ModerationStore,
    ModerationWorkflow,
)
from esap.services.notification import NotificationService


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def moderation_store(storage):
    return ModerationStore(storage)


@pytest.fixture
def categories(moderation_store, guard, notifications):
    return ModerationWorkflow(CATEGORY, moderation_store, guard=guard, notifications=notifications)


@pytest.fixture
def tags(moderation_store, guard, notifications):
    return ModerationWorkflow(TAG, moderation_store, guard=guard, notifications=notifications)


@pytest.fixture
def content_review(moderation_store, guard, notifications):
    return ModerationWorkflow(CONTENT, moderation_store, guard=guard, notifications=notifications)


@pytest.fixture
def catalog(storage, guard):
    return Catalog(storage, guard=guard)


# =============================================================================
# Subject configuration
# =============================================================================


class TestSubjectConfig:
    def test_request_terminal_statuses(self):
        assert set(CATEGORY.terminal_statuses) == {RequestStatus.APPROVED, RequestStatus.REJECTED}

    def test_content_terminal_statuses(self):
        assert set(CONTENT.terminal_statuses) == {ContentStatus.PUBLISHED, ContentStatus.REJECTED}

    def test_materializes(self):
        assert CATEGORY.materializes and TAG.materializes
        assert not CONTENT.materializes

    def test_registry(self):
        assert SUBJECTS[SubjectKind.CATEGORY] is CATEGORY
        assert SUBJECTS[SubjectKind.CONTENT] is CONTENT


# =============================================================================
# Category / tag requests
# =============================================================================


class TestRequestWorkflow:
    @pytest.mark.asyncio
    async def test_propose_is_pending(self, categories, consumer):
        request = await categories.propose(consumer, "Physics", "Matter and energy")
        assert request.status == RequestStatus.PENDING
        assert request.requester_id == consumer.id
        assert request.requested_name == "Physics"

    @pytest.mark.asyncio
    async def test_propose_requires_name(self, categories, consumer):
        with pytest.raises(ValidationError, match="category_name is required"):
            await categories.propose(consumer, "   ")

    @pytest.mark.asyncio
    async def test_physics_scenario(self, categories, catalog, creator, other_creator, admin):
        """Two requests for the same name: one canonical entry, second reports it exists."""
        first = await categories.propose(creator, "Physics")
        second = await categories.propose(other_creator, "Physics")

        outcome = await categories.approve(admin, first.id)
        assert outcome.created is True
        assert outcome.message == "Category approved"
        assert outcome.entity["name"] == "Physics"
        assert outcome.entity["created_by"] == creator.id
        assert outcome.subject["status"] == RequestStatus.APPROVED
        assert outcome.subject["resolved_by"] == admin.id

        outcome = await categories.approve(admin, second.id)
        assert outcome.created is False
        assert outcome.message == "Category already exists"
        assert outcome.subject["status"] == RequestStatus.APPROVED

        names = [c.name for c in await catalog.list_categories()]
        assert names == ["Physics"]

    @pytest.mark.asyncio
    async def test_approve_after_direct_create(self, categories, catalog, creator, admin):
        await catalog.create_category(admin, "Chemistry")
        request = await categories.propose(creator, "Chemistry")

        outcome = await categories.approve(admin, request.id)
        assert outcome.created is False
        assert len(await catalog.list_categories()) == 1

    @pytest.mark.asyncio
    async def test_reject_never_materializes(self, categories, catalog, creator, admin):
        request = await categories.propose(creator, "Alchemy")
        outcome = await categories.reject(admin, request.id)

        assert outcome.subject["status"] == RequestStatus.REJECTED
        assert outcome.message == "Category request rejected"
        assert outcome.entity is None
        assert await catalog.list_categories() == []

    @pytest.mark.asyncio
    async def test_terminal_states(self, categories, catalog, creator, admin):
        approved = await categories.propose(creator, "Biology")
        rejected = await categories.propose(creator, "Astrology")
        await categories.approve(admin, approved.id)
        await categories.reject(admin, rejected.id)

        with pytest.raises(InvalidState):
            await categories.approve(admin, approved.id)
        with pytest.raises(InvalidState):
            await categories.reject(admin, approved.id)
        with pytest.raises(InvalidState):
            await categories.approve(admin, rejected.id)

        assert [c.name for c in await catalog.list_categories()] == ["Biology"]

    @pytest.mark.asyncio
    async def test_only_admin_resolves(self, categories, creator, consumer):
        request = await categories.propose(consumer, "Geology")
        with pytest.raises(Forbidden):
            await categories.approve(creator, request.id)
        with pytest.raises(Forbidden):
            await categories.reject(consumer, request.id)

    @pytest.mark.asyncio
    async def test_role_checked_before_lookup(self, categories, consumer):
        with pytest.raises(Forbidden):
            await categories.approve(consumer, "req_missing")

    @pytest.mark.asyncio
    async def test_unknown_request(self, categories, admin):
        with pytest.raises(NotFound, match="Request not found"):
            await categories.approve(admin, "req_missing")

    @pytest.mark.asyncio
    async def test_get(self, categories, creator):
        request = await categories.propose(creator, "Optics")
        assert (await categories.get(request.id))["requested_name"] == "Optics"
        with pytest.raises(NotFound):
            await categories.get("req_missing")

    @pytest.mark.asyncio
    async def test_concurrent_approvals(self, categories, catalog, creator, admin):
        request = await categories.propose(creator, "Mathematics")

        results = await asyncio.gather(
            categories.approve(admin, request.id),
            categories.approve(admin, request.id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidState)
        assert len(await catalog.list_categories()) == 1

    @pytest.mark.asyncio
    async def test_failed_materialize_rolls_back(self, categories, catalog, creator, admin, monkeypatch):
        request = await categories.propose(creator, "Geometry")

        async def unavailable(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(ModerationStore, "materialize", unavailable)
        with pytest.raises(RuntimeError):
            await categories.approve(admin, request.id)

        # Mark and materialize commit together, so the request is still open
        assert (await categories.get(request.id))["status"] == RequestStatus.PENDING
        assert await catalog.list_categories() == []

        monkeypatch.undo()
        outcome = await categories.approve(admin, request.id)
        assert outcome.created is True
        assert [c.name for c in await catalog.list_categories()] == ["Geometry"]

    @pytest.mark.asyncio
    async def test_list_pending(self, categories, creator, admin, consumer):
        keep = await categories.propose(creator, "History")
        done = await categories.propose(creator, "Art")
        await categories.reject(admin, done.id)

        pending = await categories.list_pending(admin)
        assert [p["id"] for p in pending] == [keep.id]

        with pytest.raises(Forbidden):
            await categories.list_pending(consumer)

    @pytest.mark.asyncio
    async def test_tag_messages(self, tags, catalog, creator, admin):
        first = await tags.propose(creator, "quantum")
        second = await tags.propose(creator, "quantum")

        assert (await tags.approve(admin, first.id)).message == "Tag approved and created"
        assert (await tags.approve(admin, second.id)).message == "Tag request approved (tag already existed)"
        assert [t.name for t in await catalog.list_tags()] == ["quantum"]

    @pytest.mark.asyncio
    async def test_requests_are_not_submitted(self, categories, creator):
        with pytest.raises(TypeError):
            await categories.request_approval(creator, "req_x")


# =============================================================================
# Content
# =============================================================================


class TestContentWorkflow:
    @pytest.mark.asyncio
    async def test_publish(self, catalog, content_review, creator, admin):
        draft = await catalog.create_content(creator, "Intro to Optics", body="Light bends.")
        assert draft.status == ContentStatus.DRAFT

        outcome = await content_review.request_approval(creator, draft.id)
        assert outcome.subject["status"] == ContentStatus.PENDING_APPROVAL
        assert outcome.message == "Approval requested"

        outcome = await content_review.approve(admin, draft.id)
        assert outcome.subject["status"] == ContentStatus.PUBLISHED
        assert outcome.message == "Content approved"

        published = await catalog.list_content(status=ContentStatus.PUBLISHED)
        assert [c.id for c in published] == [draft.id]

    @pytest.mark.asyncio
    async def test_rejected_content_cannot_be_approved(self, catalog, content_review, creator, admin):
        draft = await catalog.create_content(creator, "Perpetual motion")
        await content_review.request_approval(creator, draft.id)
        await content_review.reject(admin, draft.id)

        with pytest.raises(InvalidState):
            await content_review.approve(admin, draft.id)
        with pytest.raises(InvalidState):
            await content_review.request_approval(creator, draft.id)

        content = await catalog.get_content(draft.id)
        assert content.status == ContentStatus.REJECTED

    @pytest.mark.asyncio
    async def test_draft_cannot_be_approved(self, catalog, content_review, creator, admin):
        draft = await catalog.create_content(creator, "Not yet")
        with pytest.raises(InvalidState):
            await content_review.approve(admin, draft.id)

    @pytest.mark.asyncio
    async def test_submit_own_content_only(self, catalog, content_review, creator, other_creator, admin):
        draft = await catalog.create_content(creator, "Mine")

        with pytest.raises(Forbidden):
            await content_review.request_approval(other_creator, draft.id)

        # Admins may submit anyone's draft
        outcome = await content_review.request_approval(admin, draft.id)
        assert outcome.subject["status"] == ContentStatus.PENDING_APPROVAL

    @pytest.mark.asyncio
    async def test_consumer_cannot_submit(self, catalog, content_review, creator, consumer):
        draft = await catalog.create_content(creator, "Mine")
        with pytest.raises(Forbidden):
            await content_review.request_approval(consumer, draft.id)

    @pytest.mark.asyncio
    async def test_unknown_content(self, content_review, admin):
        with pytest.raises(NotFound, match="Content not found"):
            await content_review.approve(admin, "content_missing")


# =============================================================================
# Notifications on resolution
# =============================================================================


class TestResolutionNotifications:
    @pytest.mark.asyncio
    async def test_requester_notified_on_approve(self, categories, notifications, creator, admin):
        request = await categories.propose(creator, "Physics")
        await categories.approve(admin, request.id)

        [notification] = await notifications.list_for(creator)
        assert notification.title == "Category Request Approved"
        assert '"Physics"' in notification.message
        assert notification.read is False

    @pytest.mark.asyncio
    async def test_author_notified_on_reject(self, catalog, content_review, notifications, creator, admin):
        draft = await catalog.create_content(creator, "Hot take")
        await content_review.request_approval(creator, draft.id)
        await content_review.reject(admin, draft.id)

        [notification] = await notifications.list_for(creator)
        assert notification.title == "Content Rejected"

    @pytest.mark.asyncio
    async def test_no_notification_on_submit(self, catalog, content_review, notifications, creator):
        draft = await catalog.create_content(creator, "Quiet")
        await content_review.request_approval(creator, draft.id)
        assert await notifications.list_for(creator) == []

    @pytest.mark.asyncio
    async def test_mark_read_is_owner_scoped(self, notifications, creator, consumer):
        notification = await notifications.notify(creator.id, "Hello", "World")

        with pytest.raises(NotFound):
            await notifications.mark_read(consumer, notification.id)

        updated = await notifications.mark_read(creator, notification.id)
        assert updated.read is True

    @pytest.mark.asyncio
    async def test_mark_all_read(self, notifications, creator):
        await notifications.notify(creator.id, "One", "1")
        await notifications.notify(creator.id, "Two", "2")

        assert await notifications.mark_all_read(creator) == 2
        assert await notifications.list_for(creator, unread_only=True) == []


# =============================================================================
# Catalog
# =============================================================================


class TestCatalog:
    @pytest.mark.asyncio
    async def test_direct_create_is_admin_only(self, catalog, creator):
        with pytest.raises(Forbidden):
            await catalog.create_category(creator, "Physics")

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, catalog, admin):
        await catalog.create_tag(admin, "optics")
        with pytest.raises(Conflict):
            await catalog.create_tag(admin, "optics")

    @pytest.mark.asyncio
    async def test_content_type_validated(self, catalog, creator):
        with pytest.raises(ValidationError):
            await catalog.create_content(creator, "Bad", content_type="podcast")

    @pytest.mark.asyncio
    async def test_category_must_exist(self, catalog, creator):
        with pytest.raises(NotFound, match="Category not found"):
            await catalog.create_content(creator, "Orphan", category_id="cat_missing")

    @pytest.mark.asyncio
    async def test_consumer_cannot_write(self, catalog, consumer):
        with pytest.raises(Forbidden):
            await catalog.create_content(consumer, "Nope")

    @pytest.mark.asyncio
    async def test_drafts_hidden_from_others(self, catalog, creator, other_creator, admin):
        draft = await catalog.create_content(creator, "Secret draft")

        assert (await catalog.get_content(draft.id, viewer=creator)).id == draft.id
        assert (await catalog.get_content(draft.id, viewer=admin)).id == draft.id
        with pytest.raises(NotFound):
            await catalog.get_content(draft.id, viewer=other_creator)

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, catalog):
        with pytest.raises(ValidationError):
            await catalog.list_content(status="archived")

    @pytest.mark.asyncio
    async def test_list_limit_from_settings(self, storage, guard, admin, monkeypatch):
        monkeypatch.setattr(get_settings(), "list_limit", 2)
        catalog = Catalog(storage, guard=guard)
        for name in ("Art", "Biology", "Chemistry"):
            await catalog.create_category(admin, name)

        assert len(await catalog.list_categories()) == 2

        notifications = NotificationService(storage)
        for title in ("One", "Two", "Three"):
            await notifications.notify(admin.id, title, "body")
        assert len(await notifications.list_for(admin)) == 2
