"""
Core module - data models, error taxonomy and shared utilities.
"""

from esap.core.errors import (
    EsapError,
    ValidationError,
    Unauthenticated,
    Forbidden,
    NotFound,
    InvalidState,
    Conflict,
    InvalidPin,
    Unexpected,
    InvalidToken,
)
from esap.core.models import (
    Role,
    UserStatus,
    SubjectKind,
    RequestStatus,
    ContentStatus,
    ContentType,
    NotificationType,
    User,
    UserResponse,
    ModerationRequest,
    Category,
    Tag,
    Content,
    Relation,
    ContentTag,
    PasswordResetPin,
    Notification,
)
from esap.core.utils import generate_id, utc_now, normalize_email

__all__ = [
    # Errors
    "EsapError",
    "ValidationError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "InvalidState",
    "Conflict",
    "InvalidPin",
    "Unexpected",
    "InvalidToken",
    # Enums
    "Role",
    "UserStatus",
    "SubjectKind",
    "RequestStatus",
    "ContentStatus",
    "ContentType",
    "NotificationType",
    # Models
    "User",
    "UserResponse",
    "ModerationRequest",
    "Category",
    "Tag",
    "Content",
    "Relation",
    "ContentTag",
    "PasswordResetPin",
    "Notification",
    # Utils
    "generate_id",
    "utc_now",
    "normalize_email",
]
