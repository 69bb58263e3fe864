"""API routes package."""

from appnode.routes.record_routes import router as record_router
from appnode.routes.internal_routes import router as internal_router

__all__ = ["record_router", "internal_router"]
