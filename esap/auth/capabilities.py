"""
Roles and capability sets.

This defines WHO may do what, not HOW we check it.
The actual checking happens in policies.py.

Callers declare the set of roles allowed to perform an operation; a caller
passes when its role is a member of that set. An empty set means "any
authenticated identity".
"""

from __future__ import annotations

from typing import Iterable

from esap.core.models import Role


RoleSet = frozenset[Role]


# =============================================================================
# Capability Sets
# =============================================================================


# Any authenticated identity
AUTHENTICATED: RoleSet = frozenset()

# Moderation decisions, user management, direct catalog edits
ADMIN_ONLY: RoleSet = frozenset({Role.ADMIN})

# Writing content, tagging content, requesting approval
AUTHORS: RoleSet = frozenset({Role.ADMIN, Role.CREATOR})

# Bookmarks, read-later
MEMBERS: RoleSet = frozenset({Role.ADMIN, Role.CREATOR, Role.CONSUMER})


def role_set(roles: Iterable[Role | str] | None) -> RoleSet:
    """Normalize a list of roles or role names into a RoleSet."""
    if not roles:
        return AUTHENTICATED
    return frozenset(Role(r) for r in roles)


def has_role(role: Role | str, allowed: Iterable[Role | str] | None) -> bool:
    """Membership check: empty `allowed` admits everyone."""
    allowed_set = role_set(allowed)
    if not allowed_set:
        return True
    try:
        return Role(role) in allowed_set
    except ValueError:
        return False
