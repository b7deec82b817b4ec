"""
User accounts: registration, login, password changes and admin management.

Emails are unique (case-insensitive). Users are never hard-deleted; admins
suspend them instead.
"""

from __future__ import annotations

import logging

from esap.auth.capabilities import ADMIN_ONLY
from esap.auth.context import Identity
from esap.auth.jwt import hash_password, verify_password
from esap.auth.policies import AuthorizationGuard, get_guard
from esap.config import get_settings
from esap.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from esap.core.models import Role, User, UserStatus
from esap.core.utils import normalize_email, utc_now
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class UserStore:
    """Storage-backed user accounts."""

    def __init__(self, storage: MetadataStorage, guard: AuthorizationGuard | None = None):
        settings = get_settings()
        self.storage = storage
        self.guard = guard or get_guard()
        self.password_min_length = settings.password_min_length
        self.list_limit = settings.list_limit

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_password(self, password: str | None, field: str = "Password") -> str:
        if not password:
            raise ValidationError(f"{field} is required")
        if len(password) < self.password_min_length:
            raise ValidationError(
                f"{field} must be at least {self.password_min_length} characters long"
            )
        return password

    async def get(self, user_id: str) -> User | None:
        doc = await self.storage.get(Collections.USERS, user_id)
        return User.model_validate(doc) if doc else None

    async def get_by_email(self, email: str) -> User | None:
        docs = await self.storage.query(Collections.USERS, {"email": normalize_email(email)}, limit=1)
        return User.model_validate(docs[0]) if docs else None

    async def _require(self, user_id: str) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    # -------------------------------------------------------------------------
    # Public flows
    # -------------------------------------------------------------------------

    async def register(self, email: str, password: str, role: Role = Role.CONSUMER) -> User:
        """Create an account. Duplicate emails raise Conflict."""
        email = normalize_email(email or "")
        if not email:
            raise ValidationError("Email is required")
        self._check_password(password)

        user = User(email=email, password_hash=hash_password(password), role=role)
        doc, created = await self.storage.insert_if_absent(
            Collections.USERS, user.id, user.model_dump(), unique_on=("email",)
        )
        if not created:
            raise Conflict("Email already registered")

        logger.info(f"Registered user {user.id} with role {role.value}")
        return User.model_validate(doc)

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Unknown email and wrong password produce the same error.
        """
        user = await self.get_by_email(email or "")
        if user is None or not verify_password(password or "", user.password_hash):
            raise Unauthenticated("Invalid email or password")
        if user.status == UserStatus.SUSPENDED:
            raise Forbidden("Account suspended")
        return user

    async def change_password(self, identity: Identity, old_password: str, new_password: str) -> None:
        if not old_password:
            raise ValidationError("Old and new passwords are required")
        self._check_password(new_password, field="New password")

        user = await self._require(identity.id)
        if not verify_password(old_password, user.password_hash):
            raise Unauthenticated("Invalid old password")

        await self.storage.update(Collections.USERS, user.id, {
            "password_hash": hash_password(new_password),
            "updated_at": utc_now(),
        })
        logger.info(f"Password changed for user {user.id}")

    async def reset_password(self, email: str, new_password: str) -> None:
        """
        Set a new password by email.

        Independent of PIN state: callers verify the PIN first.
        """
        if not email:
            raise ValidationError("Email and new password are required")
        self._check_password(new_password)

        user = await self.get_by_email(email)
        if user is None:
            raise NotFound("User not found")

        await self.storage.update(Collections.USERS, user.id, {
            "password_hash": hash_password(new_password),
            "updated_at": utc_now(),
        })
        logger.info(f"Password reset for user {user.id}")

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    async def list_users(self, actor: Identity) -> list[User]:
        self.guard.ensure(actor, ADMIN_ONLY)
        docs = await self.storage.query(Collections.USERS, limit=self.list_limit)
        return [User.model_validate(d) for d in docs]

    async def create_user(self, actor: Identity, email: str, password: str, role: Role) -> User:
        self.guard.ensure(actor, ADMIN_ONLY)
        return await self.register(email, password, role=role)

    async def set_status(self, actor: Identity, user_id: str, status: UserStatus | str) -> User:
        self.guard.ensure(actor, ADMIN_ONLY)
        try:
            status = UserStatus(status)
        except ValueError:
            raise ValidationError("Invalid status")

        await self._require(user_id)
        await self.storage.update(Collections.USERS, user_id, {"status": status, "updated_at": utc_now()})
        logger.info(f"User {user_id} status set to {status.value} by {actor.id}")
        return await self._require(user_id)

    async def set_role(self, actor: Identity, user_id: str, role: Role | str) -> User:
        self.guard.ensure(actor, ADMIN_ONLY)
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError("Invalid role")

        await self._require(user_id)
        await self.storage.update(Collections.USERS, user_id, {"role": role, "updated_at": utc_now()})
        logger.info(f"User {user_id} role set to {role.value} by {actor.id}")
        return await self._require(user_id)
