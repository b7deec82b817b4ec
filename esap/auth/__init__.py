"""
Authorization system - one guard in front of every protected operation.

Design principles:
1. Single dependency for all auth needs: `Depends(require(*roles))`
2. Role sets, checked by membership
3. The identity is passed explicitly into services, never stashed on the request

The HTTP router lives in esap.auth.routes and is mounted by esap.api.app.
"""

from esap.auth.context import Identity
from esap.auth.policies import (
    AuthError,
    AuthResult,
    AuthorizationGuard,
    get_guard,
    require,
    require_auth,
)
from esap.auth.capabilities import (
    ADMIN_ONLY,
    AUTHENTICATED,
    AUTHORS,
    MEMBERS,
    RoleSet,
)
from esap.auth.jwt import (
    TokenClaims,
    TokenResponse,
    TokenService,
    get_token_service,
    hash_password,
    verify_password,
)

__all__ = [
    # Main interface
    "require",
    "require_auth",
    "Identity",
    "AuthorizationGuard",
    "AuthResult",
    "AuthError",
    "get_guard",
    # Capability sets
    "RoleSet",
    "AUTHENTICATED",
    "ADMIN_ONLY",
    "AUTHORS",
    "MEMBERS",
    # Tokens
    "TokenClaims",
    "TokenResponse",
    "TokenService",
    "get_token_service",
    "hash_password",
    "verify_password",
]
