"""FastAPI routers for post publication and notifications."""

from __future__ import annotations

from fastapi import APIRouter

from alumnet.posts.api import notifications, posts

router = APIRouter(prefix="/api/v1")

router.include_router(posts.router)
router.include_router(notifications.router)

__all__ = ["router"]
