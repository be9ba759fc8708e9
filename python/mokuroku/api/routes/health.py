"""Health check endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from mokuroku.api.deps import get_session_registry
from mokuroku.responses import success_response
from mokuroku.services.lookup import SessionRegistry

router = APIRouter()


@router.get("/health")
async def health_check(
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> dict:
    """Liveness check endpoint.

    Returns 200 if the process is running, with the number of live
    interactive sessions. Does not check the store or the catalog.
    """
    return success_response({"status": "ok", "active_sessions": len(registry)})
