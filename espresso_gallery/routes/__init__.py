"""Route modules for the Espresso Gallery API."""

from fastapi import APIRouter

from espresso_gallery.auth import auth_router

from .content import router as content_router
from .creators import router as creators_router
from .debug import router as debug_router
from .followers import router as followers_router
from .gallery import router as gallery_router
from .health import router as health_router
from .subscriptions import router as subscriptions_router


def create_api_router() -> APIRouter:
    """Create aggregated router with all API routes."""
    api_router = APIRouter()

    api_router.include_router(health_router)
    api_router.include_router(auth_router)
    api_router.include_router(gallery_router)
    api_router.include_router(content_router)
    api_router.include_router(creators_router)
    api_router.include_router(followers_router)
    api_router.include_router(subscriptions_router)
    api_router.include_router(debug_router)

    return api_router


__all__ = ["create_api_router"]
