"""
FastAPI application for the ESAP platform.

This is the HTTP API that frontends talk to. Routers live next to the
services they expose; this module wires them together, installs the error
envelope and serves the few endpoints that have no other home.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from esap.api.state import get_notifications, state
from esap.auth.context import Identity
from esap.auth.policies import require_auth
from esap.auth.routes import router as auth_router
from esap.config import get_settings
from esap.core.errors import Conflict, EsapError, Unexpected
from esap.core.models import Role
from esap.integrations.sentry import init_sentry
from esap.moderation.routes import admin_router, categories_router, content_router, tags_router
from esap.relations.routes import (
    bookmarks_router,
    comments_router,
    content_tags_router,
    read_later_router,
    votes_router,
)
from esap.services.notification import NotificationService
from esap.storage import create_local_storage

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


async def seed_admin() -> None:
    """Create the bootstrap admin account from settings, once."""
    if not (settings.admin_email and settings.admin_password):
        return
    try:
        await state.users.create_user(
            Identity.system(), settings.admin_email, settings.admin_password, role=Role.ADMIN
        )
        logger.info(f"Seeded admin account {settings.admin_email}")
    except Conflict:
        logger.debug(f"Admin account {settings.admin_email} already exists")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    if init_sentry():
        logger.info("Sentry error tracking enabled")

    state.init(create_local_storage())
    await seed_admin()

    logger.info(f"{settings.app_name} API starting in {settings.environment} mode")

    yield

    logger.info(f"{settings.app_name} API shutting down")


# =============================================================================
# App Setup
# =============================================================================


app = FastAPI(
    title="ESAP API",
    description="Content platform with moderated categories, tags and content",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(categories_router)
app.include_router(tags_router)
app.include_router(content_router)
app.include_router(content_tags_router)
app.include_router(admin_router)
app.include_router(bookmarks_router)
app.include_router(read_later_router)
app.include_router(votes_router)
app.include_router(comments_router)


# =============================================================================
# Error Envelope
# =============================================================================


@app.exception_handler(EsapError)
async def esap_error_handler(request: Request, exc: EsapError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Body/query validation failures use the same envelope, as 400."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        # Drop the "body"/"query" prefix from the location
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    # Full detail goes to the log (and Sentry via its logging integration), never to the caller
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=Unexpected().to_envelope())


# =============================================================================
# Health
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "esap-api"}


# =============================================================================
# Notifications
# =============================================================================


@app.get("/notifications", tags=["notifications"])
async def list_notifications(
    unread_only: bool = False,
    identity: Identity = Depends(require_auth()),
    notifications: NotificationService = Depends(get_notifications),
):
    items = await notifications.list_for(identity, unread_only=unread_only)
    return {"success": True, "notifications": items}


@app.put("/notifications/mark-all-read", tags=["notifications"])
async def mark_all_notifications_read(
    identity: Identity = Depends(require_auth()),
    notifications: NotificationService = Depends(get_notifications),
):
    count = await notifications.mark_all_read(identity)
    return {"success": True, "message": "All notifications marked as read", "count": count}


@app.put("/notifications/{notification_id}/read", tags=["notifications"])
async def mark_notification_read(
    notification_id: str,
    identity: Identity = Depends(require_auth()),
    notifications: NotificationService = Depends(get_notifications),
):
    notification = await notifications.mark_read(identity, notification_id)
    return {"success": True, "notification": notification}
