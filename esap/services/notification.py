"""
Notification Service.

In-app notifications: moderation outcomes and system messages addressed to
one user. Users only ever see and mark their own notifications.
"""

from __future__ import annotations

import logging

from esap.auth.context import Identity
from esap.config import get_settings
from esap.core.errors import NotFound
from esap.core.models import Notification, NotificationType
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates, lists and marks notifications."""

    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self.list_limit = get_settings().list_limit

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
    ) -> Notification:
        notification = Notification(user_id=user_id, title=title, message=message, type=type)
        await self.storage.save(Collections.NOTIFICATIONS, notification.id, notification.model_dump())
        logger.debug(f"Notified {user_id}: {title}")
        return notification

    async def list_for(self, identity: Identity, unread_only: bool = False) -> list[Notification]:
        filters: dict[str, object] = {"user_id": identity.id}
        if unread_only:
            filters["read"] = False
        docs = await self.storage.query(Collections.NOTIFICATIONS, filters, limit=self.list_limit)
        notifications = [Notification.model_validate(d) for d in docs]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    async def mark_read(self, identity: Identity, notification_id: str) -> Notification:
        """Mark one of the caller's notifications read; others' ids are NotFound."""
        updated = await self.storage.update_if(
            Collections.NOTIFICATIONS,
            notification_id,
            expected={"user_id": identity.id},
            updates={"read": True},
        )
        if updated is None:
            raise NotFound("Notification not found")
        return Notification.model_validate(updated)

    async def mark_all_read(self, identity: Identity) -> int:
        return await self.storage.update_where(
            Collections.NOTIFICATIONS,
            {"user_id": identity.id, "read": False},
            {"read": True},
        )
