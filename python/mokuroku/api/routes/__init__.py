"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from mokuroku.api.routes.health import router as health_router
from mokuroku.api.routes.watchlist import router as watchlist_router


def create_api_router() -> APIRouter:
    """Create the API router with all routes registered."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(watchlist_router, tags=["watchlist"])
    return api_router


__all__ = ["create_api_router"]
