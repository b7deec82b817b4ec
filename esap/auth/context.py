"""
Identity - the "who is calling" for each request.

This is the lightweight object handed to route handlers by the guard and
then passed explicitly into every service call. Nothing is attached to the
request object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from esap.auth.capabilities import has_role
from esap.core.models import Role, UserStatus


@dataclass(frozen=True)
class Identity:
    """
    Claims of an authenticated caller, as carried in the session token.

    Usage in routes:
        async def approve(id: str, identity: Identity = Depends(require(*ADMIN_ONLY))):
            await workflow.approve(identity, id)
    """

    id: str
    email: str
    role: Role
    status: UserStatus = UserStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_any_role(self, roles: Iterable[Role | str] | None) -> bool:
        """True if this identity's role is in `roles` (or `roles` is empty)."""
        return has_role(self.role, roles)

    def owns(self, owner_id: str | None) -> bool:
        return owner_id is not None and owner_id == self.id

    @classmethod
    def system(cls) -> Identity:
        """Identity for internal operations (seeding, maintenance scripts)."""
        return cls(id="__system__", email="system@localhost", role=Role.ADMIN)
