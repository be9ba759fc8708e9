"""FastAPI dependencies for route handlers."""

from fastapi import Request

from mokuroku.services.context import SessionContext
from mokuroku.services.lookup import SessionRegistry

__all__ = ["get_session_context", "get_session_registry"]


def get_session_context(request: Request) -> SessionContext:
    """Get the shared SessionContext created at app startup."""
    return request.app.state.session_context


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry
