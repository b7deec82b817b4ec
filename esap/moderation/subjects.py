"""
Subject kinds and their moderation configuration.

One workflow implementation serves every kind; what differs per kind lives
here: where records are stored, which roles may perform each action, the
state graph, and (for categories and tags) how an approved request is
turned into a canonical, name-unique entry.

    category / tag request:  pending --approve--> approved (+ materialize)
                             pending --reject---> rejected

    content:                 draft --submit--> pending_approval
                             pending_approval --approve--> published
                             pending_approval --reject---> rejected
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel

from esap.auth.capabilities import ADMIN_ONLY, AUTHENTICATED, AUTHORS, RoleSet
from esap.core.models import (
    Category,
    ContentStatus,
    RequestStatus,
    SubjectKind,
    Tag,
)
from esap.storage.base import Collections


# Actions
SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
LIST_PENDING = "list_pending"


@dataclass(frozen=True)
class Transition:
    """Legal source statuses and the status an action moves a subject to."""

    sources: tuple[str, ...]
    target: str

    def allows(self, status: Any) -> bool:
        # Tuple membership compares with ==, which matches str enums and plain strings alike
        return status in self.sources


@dataclass(frozen=True)
class SubjectConfig:
    """Everything the generic workflow needs to know about one subject kind."""

    kind: SubjectKind
    label: str
    collection: str
    pending_status: str
    transitions: dict[str, Transition]
    roles: dict[str, RoleSet]
    owner_field: str

    # Request kinds: approved requests materialize a canonical entry
    canonical_collection: str | None = None
    unique_on: tuple[str, ...] = ()
    build_canonical: Callable[[dict[str, Any]], BaseModel] | None = None

    # Non-admins may only submit subjects they own
    owner_scoped_submit: bool = False

    messages: dict[str, str] = field(default_factory=dict)

    @property
    def materializes(self) -> bool:
        return self.canonical_collection is not None

    @property
    def terminal_statuses(self) -> tuple[str, ...]:
        """Statuses that no action can leave."""
        sources = [s for t in self.transitions.values() for s in t.sources]
        targets = [t.target for t in self.transitions.values()]
        return tuple(t for t in targets if t not in sources)

    def message(self, key: str) -> str:
        return self.messages.get(key, key)


# =============================================================================
# Canonical builders
# =============================================================================


def _category_from_request(request: dict[str, Any]) -> Category:
    return Category(
        name=request["requested_name"],
        description=request.get("description"),
        created_by=request["requester_id"],
        status=RequestStatus.APPROVED,
    )


def _tag_from_request(request: dict[str, Any]) -> Tag:
    return Tag(
        name=request["requested_name"],
        created_by=request["requester_id"],
        status=RequestStatus.APPROVED,
    )


# =============================================================================
# The three kinds
# =============================================================================


_REQUEST_TRANSITIONS = {
    APPROVE: Transition(sources=(RequestStatus.PENDING,), target=RequestStatus.APPROVED),
    REJECT: Transition(sources=(RequestStatus.PENDING,), target=RequestStatus.REJECTED),
}

_REQUEST_ROLES = {
    SUBMIT: AUTHENTICATED,
    APPROVE: ADMIN_ONLY,
    REJECT: ADMIN_ONLY,
    LIST_PENDING: ADMIN_ONLY,
}


CATEGORY = SubjectConfig(
    kind=SubjectKind.CATEGORY,
    label="Category",
    collection=Collections.CATEGORY_REQUESTS,
    pending_status=RequestStatus.PENDING,
    transitions=_REQUEST_TRANSITIONS,
    roles=_REQUEST_ROLES,
    owner_field="requester_id",
    canonical_collection=Collections.CATEGORIES,
    unique_on=("name",),
    build_canonical=_category_from_request,
    messages={
        "not_found": "Request not found",
        "submitted": "Category request submitted",
        "approved": "Category approved",
        "already_exists": "Category already exists",
        "rejected": "Category request rejected",
    },
)


TAG = SubjectConfig(
    kind=SubjectKind.TAG,
    label="Tag",
    collection=Collections.TAG_REQUESTS,
    pending_status=RequestStatus.PENDING,
    transitions=_REQUEST_TRANSITIONS,
    roles=_REQUEST_ROLES,
    owner_field="requester_id",
    canonical_collection=Collections.TAGS,
    unique_on=("name",),
    build_canonical=_tag_from_request,
    messages={
        "not_found": "Request not found",
        "submitted": "Tag request submitted",
        "approved": "Tag approved and created",
        "already_exists": "Tag request approved (tag already existed)",
        "rejected": "Tag request rejected",
    },
)


CONTENT = SubjectConfig(
    kind=SubjectKind.CONTENT,
    label="Content",
    collection=Collections.CONTENT,
    pending_status=ContentStatus.PENDING_APPROVAL,
    transitions={
        SUBMIT: Transition(sources=(ContentStatus.DRAFT,), target=ContentStatus.PENDING_APPROVAL),
        APPROVE: Transition(sources=(ContentStatus.PENDING_APPROVAL,), target=ContentStatus.PUBLISHED),
        REJECT: Transition(sources=(ContentStatus.PENDING_APPROVAL,), target=ContentStatus.REJECTED),
    },
    roles={
        SUBMIT: AUTHORS,
        APPROVE: ADMIN_ONLY,
        REJECT: ADMIN_ONLY,
        LIST_PENDING: ADMIN_ONLY,
    },
    owner_field="author_id",
    owner_scoped_submit=True,
    messages={
        "not_found": "Content not found",
        "submitted": "Approval requested",
        "approved": "Content approved",
        "rejected": "Content rejected",
    },
)


SUBJECTS: dict[SubjectKind, SubjectConfig] = {
    SubjectKind.CATEGORY: CATEGORY,
    SubjectKind.TAG: TAG,
    SubjectKind.CONTENT: CONTENT,
}
