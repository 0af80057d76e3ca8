"""API routers."""

from app.routers.admin import router as admin_router
from app.routers.reviews import router as reviews_router

__all__ = ["reviews_router", "admin_router"]
