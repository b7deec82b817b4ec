# =============================================================================
# Moderation API Routes
# =============================================================================
#
# Public catalog (any authenticated user):
#   GET  /categories                 - Approved categories
#   POST /categories/request         - Propose a category
#   GET  /tags                       - Approved tags
#   POST /tags/request               - Propose a tag
#
# Content (creators and admins write, everyone reads published):
#   GET  /content                    - Published content
#   GET  /content/mine               - Caller's own content, any status
#   POST /content                    - Create a draft
#   GET  /content/{id}               - One item
#   POST /content/{id}/request-approval
#
# Admin:
#   POST /admin/categories, /admin/tags           - Create directly
#   GET  /admin/{categories,tags}/requests        - Pending requests
#   PUT  /admin/{categories,tags}/{id}/approve    - Approve request
#   PUT  /admin/{categories,tags}/{id}/reject     - Reject request
#   GET  /admin/content/pending
#   PUT  /admin/content/{id}/approve, /reject
#   GET  /admin/users
#   PUT  /admin/users/{id}/status, /role
#
# =============================================================================

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from esap.api.state import (
    get_catalog,
    get_category_requests,
    get_content_review,
    get_tag_requests,
    get_users,
)
from esap.auth.capabilities import ADMIN_ONLY, AUTHORS
from esap.auth.context import Identity
from esap.auth.policies import require, require_auth
from esap.auth.users import UserStore
from esap.core.models import ContentStatus, ContentType, Role, UserResponse, UserStatus
from esap.moderation.catalog import Catalog
from esap.moderation.workflow import ModerationWorkflow

categories_router = APIRouter(prefix="/categories", tags=["categories"])
tags_router = APIRouter(prefix="/tags", tags=["tags"])
content_router = APIRouter(prefix="/content", tags=["content"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# Request Models
# =============================================================================

class CategoryRequestBody(BaseModel):
    category_name: str = ""
    description: str | None = None


class TagRequestBody(BaseModel):
    tag_name: str = ""


class CreateCategoryRequest(BaseModel):
    name: str
    description: str | None = None


class CreateTagRequest(BaseModel):
    name: str


class CreateContentRequest(BaseModel):
    title: str
    body: str | None = None
    description: str | None = None
    content_type: ContentType = ContentType.POST
    category_id: str | None = None


class SetStatusRequest(BaseModel):
    status: UserStatus


class SetRoleRequest(BaseModel):
    role: Role


# =============================================================================
# Categories / Tags
# =============================================================================

@categories_router.get("")
async def list_categories(
    identity: Identity = Depends(require_auth()),
    catalog: Catalog = Depends(get_catalog),
):
    return {"success": True, "categories": await catalog.list_categories()}


@categories_router.post("/request", status_code=201)
async def request_category(
    data: CategoryRequestBody,
    identity: Identity = Depends(require_auth()),
    workflow: ModerationWorkflow = Depends(get_category_requests),
):
    """Propose a new category. An admin approves or rejects it later."""
    request = await workflow.propose(identity, data.category_name, data.description)
    return {"success": True, "message": "Category request submitted", "request": request}


@tags_router.get("")
async def list_tags(
    identity: Identity = Depends(require_auth()),
    catalog: Catalog = Depends(get_catalog),
):
    return {"success": True, "tags": await catalog.list_tags()}


@tags_router.post("/request", status_code=201)
async def request_tag(
    data: TagRequestBody,
    identity: Identity = Depends(require_auth()),
    workflow: ModerationWorkflow = Depends(get_tag_requests),
):
    request = await workflow.propose(identity, data.tag_name)
    return {"success": True, "message": "Tag request submitted", "request": request}


# =============================================================================
# Content
# =============================================================================

@content_router.get("")
async def list_published_content(
    identity: Identity = Depends(require_auth()),
    catalog: Catalog = Depends(get_catalog),
):
    return {"success": True, "content": await catalog.list_content(status=ContentStatus.PUBLISHED)}


@content_router.get("/mine")
async def list_my_content(
    status: ContentStatus | None = None,
    identity: Identity = Depends(require(*AUTHORS)),
    catalog: Catalog = Depends(get_catalog),
):
    return {"success": True, "content": await catalog.list_content(author_id=identity.id, status=status)}


@content_router.post("", status_code=201)
async def create_content(
    data: CreateContentRequest,
    identity: Identity = Depends(require(*AUTHORS)),
    catalog: Catalog = Depends(get_catalog),
):
    """Create a draft owned by the caller."""
    content = await catalog.create_content(
        identity,
        title=data.title,
        body=data.body,
        content_type=data.content_type,
        category_id=data.category_id,
        description=data.description,
    )
    return {"success": True, "message": "Content created", "content": content}


@content_router.get("/{content_id}")
async def get_content(
    content_id: str,
    identity: Identity = Depends(require_auth()),
    catalog: Catalog = Depends(get_catalog),
):
    return {"success": True, "content": await catalog.get_content(content_id, viewer=identity)}


@content_router.post("/{content_id}/request-approval")
async def request_approval(
    content_id: str,
    identity: Identity = Depends(require(*AUTHORS)),
    workflow: ModerationWorkflow = Depends(get_content_review),
):
    """Submit a draft for review (draft -> pending_approval)."""
    outcome = await workflow.request_approval(identity, content_id)
    return {"success": True, "message": outcome.message, "content": outcome.subject}


# =============================================================================
# Admin - categories / tags
# =============================================================================

@admin_router.post("/categories", status_code=201)
async def admin_create_category(
    data: CreateCategoryRequest,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    catalog: Catalog = Depends(get_catalog),
):
    category = await catalog.create_category(identity, data.name, data.description)
    return {"success": True, "message": "Category created", "category": category}


@admin_router.get("/categories/requests")
async def pending_category_requests(
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_category_requests),
):
    return {"success": True, "requests": await workflow.list_pending(identity)}


@admin_router.put("/categories/{request_id}/approve")
async def approve_category_request(
    request_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_category_requests),
):
    outcome = await workflow.approve(identity, request_id)
    return {
        "success": True,
        "message": outcome.message,
        "request": outcome.subject,
        "category": outcome.entity,
        "created": outcome.created,
    }


@admin_router.put("/categories/{request_id}/reject")
async def reject_category_request(
    request_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_category_requests),
):
    outcome = await workflow.reject(identity, request_id)
    return {"success": True, "message": outcome.message, "request": outcome.subject}


@admin_router.post("/tags", status_code=201)
async def admin_create_tag(
    data: CreateTagRequest,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    catalog: Catalog = Depends(get_catalog),
):
    tag = await catalog.create_tag(identity, data.name)
    return {"success": True, "message": "Tag created", "tag": tag}


@admin_router.get("/tags/requests")
async def pending_tag_requests(
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_tag_requests),
):
    return {"success": True, "requests": await workflow.list_pending(identity)}


@admin_router.put("/tags/{request_id}/approve")
async def approve_tag_request(
    request_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_tag_requests),
):
    outcome = await workflow.approve(identity, request_id)
    return {
        "success": True,
        "message": outcome.message,
        "request": outcome.subject,
        "tag": outcome.entity,
        "created": outcome.created,
    }


@admin_router.put("/tags/{request_id}/reject")
async def reject_tag_request(
    request_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_tag_requests),
):
    outcome = await workflow.reject(identity, request_id)
    return {"success": True, "message": outcome.message, "request": outcome.subject}


# =============================================================================
# Admin - content review
# =============================================================================

@admin_router.get("/content/pending")
async def pending_content(
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_content_review),
):
    return {"success": True, "content": await workflow.list_pending(identity)}


@admin_router.put("/content/{content_id}/approve")
async def approve_content(
    content_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_content_review),
):
    outcome = await workflow.approve(identity, content_id)
    return {"success": True, "message": outcome.message, "content": outcome.subject}


@admin_router.put("/content/{content_id}/reject")
async def reject_content(
    content_id: str,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    workflow: ModerationWorkflow = Depends(get_content_review),
):
    outcome = await workflow.reject(identity, content_id)
    return {"success": True, "message": outcome.message, "content": outcome.subject}


# =============================================================================
# Admin - users
# =============================================================================

@admin_router.get("/users")
async def list_users(
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    users: UserStore = Depends(get_users),
):
    return {
        "success": True,
        "users": [UserResponse.from_user(u) for u in await users.list_users(identity)],
    }


@admin_router.put("/users/{user_id}/status")
async def set_user_status(
    user_id: str,
    data: SetStatusRequest,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    users: UserStore = Depends(get_users),
):
    user = await users.set_status(identity, user_id, data.status)
    return {"success": True, "message": "User status updated", "user": UserResponse.from_user(user)}


@admin_router.put("/users/{user_id}/role")
async def set_user_role(
    user_id: str,
    data: SetRoleRequest,
    identity: Identity = Depends(require(*ADMIN_ONLY)),
    users: UserStore = Depends(get_users),
):
    user = await users.set_role(identity, user_id, data.role)
    return {"success": True, "message": "User role updated", "user": UserResponse.from_user(user)}
