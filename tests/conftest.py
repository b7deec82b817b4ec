"""
Shared fixtures: in-memory storage, a token service with a test secret,
the guard, and one identity per role.
"""

from datetime import datetime, timedelta, timezone

import pytest

from esap.auth.context import Identity
from esap.auth.jwt import TokenService
from esap.auth.policies import AuthorizationGuard
from esap.core.models import Role
from esap.services.notification import NotificationService
from esap.storage import InMemoryMetadataStorage


class FakeMailer:
    """Records PIN emails instead of sending them."""

    def __init__(self, delivered: bool = True):
        self.sent: list[tuple[str, str, int]] = []
        self.delivered = delivered

    async def send_password_reset_pin(self, email: str, pin: str, expires_minutes: int) -> bool:
        self.sent.append((email, pin, expires_minutes))
        return self.delivered

    @property
    def last_pin(self) -> str:
        return self.sent[-1][1]


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def storage():
    """Fresh in-memory metadata storage."""
    return InMemoryMetadataStorage()


@pytest.fixture
def token_service():
    return TokenService(secret_key="test-secret", ttl=timedelta(hours=1))


@pytest.fixture
def guard(token_service):
    return AuthorizationGuard(token_service)


@pytest.fixture
def notifications(storage):
    return NotificationService(storage)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Identities
# =============================================================================


@pytest.fixture
def admin():
    return Identity(id="user_admin", email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def creator():
    return Identity(id="user_creator", email="creator@example.com", role=Role.CREATOR)


@pytest.fixture
def other_creator():
    return Identity(id="user_creator2", email="creator2@example.com", role=Role.CREATOR)


@pytest.fixture
def consumer():
    return Identity(id="user_consumer", email="consumer@example.com", role=Role.CONSUMER)
