"""
ModerationWorkflow - submit → review → resolve, for any subject kind.

One implementation, instantiated per SubjectConfig (category, tag, content).
Every transition:

1. checks the caller's role for the action (Forbidden)
2. loads the subject (NotFound)
3. checks the current status is a legal source (InvalidState)
4. compare-and-sets the new status, in one transaction with step 5
5. for approved category/tag requests, inserts the canonical entry unless
   one with that name already exists (reported, never duplicated)

Terminal statuses (approved/rejected requests, published/rejected content)
have no outgoing transitions, so any further attempt is InvalidState.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from esap.auth.context import Identity
from esap.auth.policies import AuthorizationGuard, get_guard
from esap.core.errors import Forbidden, InvalidState, NotFound, ValidationError
from esap.core.models import ModerationRequest, NotificationType
from esap.moderation.store import ModerationStore
from esap.moderation.subjects import (
    APPROVE,
    LIST_PENDING,
    REJECT,
    SUBMIT,
    SubjectConfig,
)
from esap.services.notification import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class TransitionOutcome:
    """Result of a successful transition."""

    subject: dict[str, Any]
    message: str
    # Canonical entry for approved category/tag requests (new or pre-existing)
    entity: dict[str, Any] | None = None
    created: bool = False


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


class ModerationWorkflow:
    """Generic moderation state machine for one subject kind."""

    def __init__(
        self,
        config: SubjectConfig,
        store: ModerationStore,
        guard: AuthorizationGuard | None = None,
        notifications: NotificationService | None = None,
    ):
        self.config = config
        self.store = store
        self.guard = guard or get_guard()
        self.notifications = notifications

    @property
    def kind(self):
        return self.config.kind

    # =========================================================================
    # Submit
    # =========================================================================

    async def propose(
        self,
        actor: Identity,
        name: str,
        description: str | None = None,
    ) -> ModerationRequest:
        """File a request for a new category/tag. Starts out pending."""
        if not self.config.materializes:
            raise TypeError(f"{self.config.label} subjects are not proposed by request")

        self.guard.ensure(actor, self.config.roles[SUBMIT])

        name = (name or "").strip()
        if not name:
            raise ValidationError(f"{self.config.kind.value}_name is required")

        request = ModerationRequest(
            subject_kind=self.config.kind,
            requested_name=name,
            description=description or None,
            requester_id=actor.id,
        )
        await self.store.create(self.config.collection, request)
        logger.info(f"{self.config.label} request {request.id} for '{name}' filed by {actor.id}")
        return request

    async def request_approval(self, actor: Identity, subject_id: str) -> TransitionOutcome:
        """Move a subject into review (content: draft → pending_approval)."""
        if SUBMIT not in self.config.transitions:
            raise TypeError(f"{self.config.label} subjects are submitted by proposal")
        return await self._transition(actor, SUBMIT, subject_id)

    # =========================================================================
    # Resolve
    # =========================================================================

    async def approve(self, actor: Identity, subject_id: str) -> TransitionOutcome:
        return await self._transition(actor, APPROVE, subject_id)

    async def reject(self, actor: Identity, subject_id: str) -> TransitionOutcome:
        return await self._transition(actor, REJECT, subject_id)

    # =========================================================================
    # Read side
    # =========================================================================

    async def list_pending(self, actor: Identity) -> list[dict[str, Any]]:
        self.guard.ensure(actor, self.config.roles[LIST_PENDING])
        return await self.store.list_by_status(self.config.collection, self.config.pending_status)

    async def get(self, subject_id: str) -> dict[str, Any]:
        subject = await self.store.get(self.config.collection, subject_id)
        if subject is None:
            raise NotFound(self.config.message("not_found"))
        return subject

    # =========================================================================
    # Internal
    # =========================================================================

    async def _transition(self, actor: Identity, action: str, subject_id: str) -> TransitionOutcome:
        config = self.config
        self.guard.ensure(actor, config.roles[action])
        transition = config.transitions[action]

        entity: dict[str, Any] | None = None
        created = False

        async with self.store.transaction() as tx:
            subject = await tx.get(config.collection, subject_id)
            if subject is None:
                raise NotFound(config.message("not_found"))

            if (
                action == SUBMIT
                and config.owner_scoped_submit
                and not actor.is_admin
                and not actor.owns(subject.get(config.owner_field))
            ):
                raise Forbidden(f"You can only submit your own {config.label.lower()}")

            current = subject.get("status")
            if not transition.allows(current):
                raise InvalidState(
                    f"Cannot {action} {config.label.lower()} in status '{_status_value(current)}'"
                )

            resolved_by = actor.id if action in (APPROVE, REJECT) else None
            updated = await tx.set_status(
                config.collection, subject_id, current, transition.target, resolved_by=resolved_by
            )
            if updated is None:
                # Another request changed the status between our read and write
                raise InvalidState(f"{config.label} was modified concurrently")

            if action == APPROVE and config.materializes:
                canonical = config.build_canonical(updated)
                entity, created = await tx.materialize(
                    config.canonical_collection, canonical, config.unique_on
                )

        if action == SUBMIT:
            message = config.message("submitted")
        elif action == APPROVE and config.materializes and not created:
            message = config.message("already_exists")
        else:
            message = config.message("approved" if action == APPROVE else "rejected")

        logger.info(
            f"{config.label} {subject_id}: {_status_value(current)} -> "
            f"{_status_value(transition.target)} by {actor.id}"
        )

        if action in (APPROVE, REJECT):
            await self._notify_owner(updated, action)

        return TransitionOutcome(subject=updated, message=message, entity=entity, created=created)

    async def _notify_owner(self, subject: dict[str, Any], action: str) -> None:
        if self.notifications is None:
            return
        owner_id = subject.get(self.config.owner_field)
        if not owner_id:
            return

        name = subject.get("requested_name") or subject.get("title") or subject.get("id")
        verb = "approved" if action == APPROVE else "rejected"
        if self.config.materializes:
            title = f"{self.config.label} Request {verb.capitalize()}"
            message = f'Your {self.config.label.lower()} request for "{name}" has been {verb} by the admin.'
        else:
            title = f"{self.config.label} {verb.capitalize()}"
            message = f'Your {self.config.label.lower()} "{name}" has been {verb} by the admin.'

        await self.notifications.notify(
            user_id=owner_id,
            title=title,
            message=message,
            type=NotificationType.APPROVAL,
        )
