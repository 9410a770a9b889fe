"""API routers for Blogroll Sync."""

from fastapi import APIRouter
from blogroll_sync.api import categories, settings

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])

__all__ = ["api_router"]
