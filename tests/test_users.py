"""
Tests for user accounts.
"""

import pytest

from esap.auth.context import Identity
from esap.auth.users import UserStore
from esap.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from esap.core.models import Role, UserStatus


@pytest.fixture
def users(storage, guard):
    return UserStore(storage, guard=guard)


# =============================================================================
# Registration / login
# =============================================================================


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_defaults(self, users):
        user = await users.register("New@Example.com", "secret1")

        assert user.email == "new@example.com"
        assert user.role == Role.CONSUMER
        assert user.status == UserStatus.ACTIVE
        assert user.password_hash != "secret1"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, users):
        await users.register("dup@example.com", "secret1")
        with pytest.raises(Conflict, match="Email already registered"):
            await users.register("DUP@example.com", "secret2")

    @pytest.mark.asyncio
    async def test_short_password(self, users):
        with pytest.raises(ValidationError):
            await users.register("short@example.com", "12345")

    @pytest.mark.asyncio
    async def test_authenticate(self, users):
        registered = await users.register("login@example.com", "secret1")
        user = await users.authenticate("login@example.com", "secret1")
        assert user.id == registered.id

    @pytest.mark.asyncio
    async def test_bad_credentials_look_the_same(self, users):
        await users.register("login@example.com", "secret1")

        with pytest.raises(Unauthenticated) as wrong_password:
            await users.authenticate("login@example.com", "nope-nope")
        with pytest.raises(Unauthenticated) as unknown_email:
            await users.authenticate("ghost@example.com", "secret1")

        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_suspended_cannot_login(self, users, admin):
        user = await users.register("bad@example.com", "secret1")
        await users.set_status(admin, user.id, UserStatus.SUSPENDED)

        with pytest.raises(Forbidden, match="Account suspended"):
            await users.authenticate("bad@example.com", "secret1")


# =============================================================================
# Passwords
# =============================================================================


class TestPasswords:
    @pytest.mark.asyncio
    async def test_change_password(self, users):
        user = await users.register("pw@example.com", "secret1")
        identity = Identity(id=user.id, email=user.email, role=user.role)

        with pytest.raises(Unauthenticated):
            await users.change_password(identity, "wrong-old", "secret2")

        await users.change_password(identity, "secret1", "secret2")
        await users.authenticate("pw@example.com", "secret2")

    @pytest.mark.asyncio
    async def test_reset_password(self, users):
        await users.register("reset@example.com", "secret1")
        await users.reset_password("reset@example.com", "brand-new")

        await users.authenticate("reset@example.com", "brand-new")
        with pytest.raises(Unauthenticated):
            await users.authenticate("reset@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_reset_unknown_email(self, users):
        with pytest.raises(NotFound, match="User not found"):
            await users.reset_password("ghost@example.com", "brand-new")

    @pytest.mark.asyncio
    async def test_reset_min_length(self, users):
        await users.register("reset@example.com", "secret1")
        with pytest.raises(ValidationError):
            await users.reset_password("reset@example.com", "abc")


# =============================================================================
# Admin management
# =============================================================================


class TestAdmin:
    @pytest.mark.asyncio
    async def test_set_role(self, users, admin):
        user = await users.register("promote@example.com", "secret1")
        updated = await users.set_role(admin, user.id, "creator")
        assert updated.role == Role.CREATOR

    @pytest.mark.asyncio
    async def test_set_role_invalid(self, users, admin):
        user = await users.register("promote@example.com", "secret1")
        with pytest.raises(ValidationError):
            await users.set_role(admin, user.id, "overlord")

    @pytest.mark.asyncio
    async def test_admin_only(self, users, creator):
        user = await users.register("promote@example.com", "secret1")
        with pytest.raises(Forbidden):
            await users.set_role(creator, user.id, Role.ADMIN)
        with pytest.raises(Forbidden):
            await users.list_users(creator)

    @pytest.mark.asyncio
    async def test_unknown_user(self, users, admin):
        with pytest.raises(NotFound):
            await users.set_status(admin, "user_missing", UserStatus.SUSPENDED)

    @pytest.mark.asyncio
    async def test_list_users(self, users, admin):
        await users.register("a@example.com", "secret1")
        await users.register("b@example.com", "secret1")
        assert {u.email for u in await users.list_users(admin)} == {"a@example.com", "b@example.com"}

    @pytest.mark.asyncio
    async def test_create_user_with_role(self, users, admin):
        user = await users.create_user(admin, "writer@example.com", "secret1", Role.CREATOR)
        assert user.role == Role.CREATOR
