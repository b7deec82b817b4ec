# =============================================================================
# JWT Session Tokens
# =============================================================================
#
# This module provides stateless session tokens:
#   - Token issuing (identity + role claims)
#   - Token verification
#   - Password hashing (treated as a black box by the rest of the code)
#
# There is no server-side session store: a token is valid iff its signature
# checks out and it has not expired.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hashlib
import logging
import secrets

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
import jwt

from esap.auth.context import Identity
from esap.config import get_settings
from esap.core.errors import InvalidToken
from esap.core.models import Role, User, UserStatus
from esap.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


# =============================================================================
# Models
# =============================================================================

class TokenClaims(BaseModel):
    """Verified JWT claims."""
    sub: str  # user_id
    email: str
    role: Role
    status: UserStatus
    iat: datetime
    exp: datetime
    type: str
    jti: str

    def to_identity(self) -> Identity:
        return Identity(id=self.sub, email=self.email, role=self.role, status=self.status)


class TokenResponse(BaseModel):
    """Returned to the client on login."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until the token expires


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=100_000
    )
    return f"{salt}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(':')
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=100_000
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Token Service
# =============================================================================

class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, subject: User | Identity) -> str:
        """Create a signed access token for a user or identity."""
        now = utc_now()
        payload = {
            "sub": subject.id,
            "email": subject.email,
            "role": Role(subject.role).value,
            "status": UserStatus(subject.status).value,
            "iat": now,
            "exp": now + self.ttl,
            "type": ACCESS_TOKEN_TYPE,
            "jti": generate_id("tok"),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def issue_response(self, subject: User | Identity) -> TokenResponse:
        return TokenResponse(
            access_token=self.issue(subject),
            expires_in=int(self.ttl.total_seconds()),
        )

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            InvalidToken: bad signature, malformed, wrong type, or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Invalid token: {e}")

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidToken(f"Expected {ACCESS_TOKEN_TYPE} token, got {payload.get('type')}")

        try:
            return TokenClaims(
                sub=payload["sub"],
                email=payload["email"],
                role=payload["role"],
                status=payload["status"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                type=payload["type"],
                jti=payload.get("jti", ""),
            )
        except (KeyError, TypeError, PydanticValidationError) as e:
            raise InvalidToken(f"Malformed claims: {e}")


# Global instance
_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get the token service singleton, configured from settings."""
    global _token_service
    if _token_service is None:
        settings = get_settings()
        _token_service = TokenService(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
        )
    return _token_service
