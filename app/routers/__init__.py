"""API routers."""

from app.routers.admin import router as admin_router
from app.routers.audio import router as audio_router
from app.routers.lifecycle import router as lifecycle_router

__all__ = ["audio_router", "admin_router", "lifecycle_router"]
