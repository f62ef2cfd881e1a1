"""API v1 module."""

from folioguard.app.api.v1.admin import router as admin_router
from folioguard.app.api.v1.auth import router as auth_router

__all__ = ["admin_router", "auth_router"]
