"""
Tests for session tokens and password hashing.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from esap.auth.jwt import TokenService, hash_password, verify_password
from esap.core.errors import InvalidToken
from esap.core.models import Role, User, UserStatus


# =============================================================================
# TokenService
# =============================================================================


class TestTokenService:
    def test_issue_and_verify(self, token_service, creator):
        token = token_service.issue(creator)
        claims = token_service.verify(token)

        assert claims.sub == creator.id
        assert claims.email == creator.email
        assert claims.role == Role.CREATOR
        assert claims.type == "access"
        assert claims.exp > claims.iat

    def test_to_identity(self, token_service, admin):
        identity = token_service.verify(token_service.issue(admin)).to_identity()
        assert identity == admin
        assert identity.is_admin

    def test_issue_from_user(self, token_service):
        user = User(email="a@example.com", password_hash="x", role=Role.CONSUMER)
        claims = token_service.verify(token_service.issue(user))
        assert claims.sub == user.id
        assert claims.status == UserStatus.ACTIVE

    def test_issue_response(self, token_service, consumer):
        response = token_service.issue_response(consumer)
        assert response.token_type == "bearer"
        assert response.expires_in == 3600
        assert token_service.verify(response.access_token).sub == consumer.id

    def test_unique_jti(self, token_service, consumer):
        a = token_service.verify(token_service.issue(consumer))
        b = token_service.verify(token_service.issue(consumer))
        assert a.jti != b.jti

    def test_expired(self, consumer):
        service = TokenService(secret_key="test-secret", ttl=timedelta(seconds=-10))
        with pytest.raises(InvalidToken):
            service.verify(service.issue(consumer))

    def test_wrong_secret(self, token_service, consumer):
        other = TokenService(secret_key="another-secret")
        with pytest.raises(InvalidToken):
            token_service.verify(other.issue(consumer))

    def test_garbage(self, token_service):
        with pytest.raises(InvalidToken):
            token_service.verify("not-a-jwt")

    def test_wrong_type(self, token_service):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user_1",
                "email": "a@example.com",
                "role": "admin",
                "status": "active",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "type": "refresh",
            },
            "test-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            token_service.verify(token)

    def test_missing_claims(self, token_service):
        token = jwt.encode({"sub": "user_1"}, "test-secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            token_service.verify(token)

    def test_unknown_role(self, token_service):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user_1",
                "email": "a@example.com",
                "role": "superuser",
                "status": "active",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "type": "access",
            },
            "test-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            token_service.verify(token)


# =============================================================================
# Password hashing
# =============================================================================


class TestPasswordHashing:
    def test_roundtrip(self):
        digest = hash_password("correct horse")
        assert verify_password("correct horse", digest)
        assert not verify_password("wrong horse", digest)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_digest(self):
        assert not verify_password("anything", "no-colon-here")
