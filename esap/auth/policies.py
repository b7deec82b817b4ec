"""
Policies - the authorization guard consulted by every protected operation.

Just use: `identity: Identity = Depends(require(*ADMIN_ONLY))`

Design:
- `AuthorizationGuard.authorize()` is a pure function of the Authorization
  header and a role set. It returns an `AuthResult` (identity or error)
  instead of raising, so callers decide how to surface the failure.
- `require()` returns a FastAPI dependency that unwraps the result: a
  failure raises before any route logic runs, a success hands the
  `Identity` to the handler as an explicit argument.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from fastapi import Depends, Request

from esap.auth.capabilities import role_set
from esap.auth.context import Identity
from esap.auth.jwt import TokenService, get_token_service
from esap.core.errors import Forbidden, InvalidToken, Unauthenticated
from esap.core.models import Role


AuthError = Unauthenticated | Forbidden


# =============================================================================
# AuthResult - tagged result of an authorization decision
# =============================================================================


@dataclass(frozen=True)
class AuthResult:
    """Either an Identity (allowed) or an AuthError (denied), never both."""

    identity: Identity | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Identity:
        """Return the identity or raise the error."""
        if self.error is not None:
            raise self.error
        assert self.identity is not None
        return self.identity

    @classmethod
    def allow(cls, identity: Identity) -> AuthResult:
        return cls(identity=identity)

    @classmethod
    def deny(cls, error: AuthError) -> AuthResult:
        return cls(error=error)


# =============================================================================
# Guard
# =============================================================================


class AuthorizationGuard:
    """
    Authenticates bearer tokens and checks role membership.

    Owns no data and has no side effects beyond the allow/deny decision.
    """

    def __init__(self, token_service: TokenService | None = None):
        self.token_service = token_service or get_token_service()

    @staticmethod
    def extract_bearer(authorization: str | None) -> str | None:
        """Pull the token out of an `Authorization: Bearer <token>` header."""
        if not authorization:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token or " " in token:
            return None
        return token

    def authenticate(self, authorization: str | None) -> AuthResult:
        """Authentication only: any valid token passes."""
        return self.authorize(authorization)

    def authorize(
        self,
        authorization: str | None,
        roles: Iterable[Role | str] | None = None,
    ) -> AuthResult:
        """
        Decide whether the bearer of `authorization` may proceed.

        Succeeds iff the token is valid AND (roles is empty OR the token's
        role is a member of roles).
        """
        token = self.extract_bearer(authorization)
        if token is None:
            return AuthResult.deny(Unauthenticated("Unauthorized"))

        try:
            claims = self.token_service.verify(token)
        except InvalidToken:
            return AuthResult.deny(Unauthenticated("Invalid or expired token"))

        return self.check(claims.to_identity(), roles)

    def check(self, identity: Identity, roles: Iterable[Role | str] | None = None) -> AuthResult:
        """Role check for an identity that is already authenticated."""
        if not identity.has_any_role(role_set(roles)):
            return AuthResult.deny(Forbidden("Forbidden"))
        return AuthResult.allow(identity)

    def ensure(self, identity: Identity, roles: Iterable[Role | str] | None = None) -> Identity:
        """Like check(), but raises Forbidden."""
        return self.check(identity, roles).unwrap()


# Global instance
_guard: AuthorizationGuard | None = None


def get_guard() -> AuthorizationGuard:
    """Get the guard singleton."""
    global _guard
    if _guard is None:
        _guard = AuthorizationGuard()
    return _guard


# =============================================================================
# Main Interface - the require() dependency
# =============================================================================


def require(*roles: Role | str) -> Callable:
    """
    Require an authenticated caller whose role is one of `roles`.

    Usage:
        @router.put("/admin/categories/{id}/approve")
        async def approve(
            id: str,
            identity: Identity = Depends(require(*ADMIN_ONLY)),
        ):
            ...

    With no roles, any authenticated identity passes.

    Returns:
        FastAPI dependency that resolves to Identity
    """
    allowed = role_set(roles)

    async def dependency(
        request: Request,
        guard: AuthorizationGuard = Depends(get_guard),
    ) -> Identity:
        result = guard.authorize(request.headers.get("Authorization"), allowed)
        return result.unwrap()

    return dependency


def require_auth() -> Callable:
    """Just require authentication, no specific role."""
    return require()
