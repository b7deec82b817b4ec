# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register        - Create account (role consumer)
#   POST /auth/login           - Get an access token
#   POST /auth/logout          - Client discards its token (stateless)
#   GET  /auth/me              - Get current user
#   POST /auth/change-password - Change password (old password required)
#
# Password reset:
#   POST /auth/generate-pin    - Email a one-time 4-digit PIN
#   POST /auth/verify-pin      - Consume the PIN
#   POST /auth/reset-password  - Set the new password
#
# =============================================================================

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from esap.api.state import get_pins, get_users
from esap.auth.context import Identity
from esap.auth.jwt import TokenService, get_token_service
from esap.auth.pins import PinVerifier
from esap.auth.policies import require_auth
from esap.auth.users import UserStore
from esap.core.errors import NotFound
from esap.core.models import UserResponse
from esap.integrations.email import get_email_service

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


class GeneratePinRequest(BaseModel):
    email: EmailStr


class VerifyPinRequest(BaseModel):
    email: EmailStr
    pin: str | int


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    new_password: str


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    users: UserStore = Depends(get_users),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Create a new account.

    Returns an access token on success, so the client is signed in right away.
    """
    user = await users.register(data.email, data.password)
    await get_email_service().send_welcome(user.email)

    return {
        "success": True,
        "message": "User registered successfully",
        "user": UserResponse.from_user(user),
        **tokens.issue_response(user).model_dump(),
    }


@router.post("/login")
async def login(
    data: LoginRequest,
    users: UserStore = Depends(get_users),
    tokens: TokenService = Depends(get_token_service),
):
    """Authenticate and get a token."""
    user = await users.authenticate(data.email, data.password)
    return {
        "success": True,
        "message": "Login successful",
        "user": UserResponse.from_user(user),
        **tokens.issue_response(user).model_dump(),
    }


@router.post("/logout")
async def logout():
    """
    Logout (client should discard its token).

    Tokens are stateless, so there is nothing to revoke server-side.
    """
    return {"success": True, "message": "Logged out successfully"}


@router.post("/generate-pin")
async def generate_pin(
    data: GeneratePinRequest,
    users: UserStore = Depends(get_users),
    pins: PinVerifier = Depends(get_pins),
):
    """
    Email a password reset PIN.

    Always returns success to prevent email enumeration.
    """
    if await users.get_by_email(data.email) is not None:
        await pins.generate(data.email)

    return {"success": True, "message": "If an account exists with this email, a PIN has been sent"}


@router.post("/verify-pin")
async def verify_pin(data: VerifyPinRequest, pins: PinVerifier = Depends(get_pins)):
    await pins.verify(data.email, data.pin)
    return {"success": True, "message": "PIN verified successfully"}


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, users: UserStore = Depends(get_users)):
    """
    Set a new password.

    The client calls verify-pin first; this endpoint does not look at PINs.
    """
    await users.reset_password(data.email, data.new_password)
    return {"success": True, "message": "Password reset successfully"}


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.get("/me")
async def get_current_user(
    identity: Identity = Depends(require_auth()),
    users: UserStore = Depends(get_users),
):
    """Get the current authenticated user."""
    user = await users.get(identity.id)
    if user is None:
        raise NotFound("User not found")

    return {"success": True, "user": UserResponse.from_user(user)}


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    identity: Identity = Depends(require_auth()),
    users: UserStore = Depends(get_users),
):
    await users.change_password(identity, data.old_password, data.new_password)
    return {"success": True, "message": "Password changed successfully"}
