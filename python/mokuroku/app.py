"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, routes and the request-id middleware.

Session Lifecycle:
- httpx.AsyncClient is created at startup and shared by every catalog fetch
- The SessionContext (catalog source, toggle machine, limits) and the
  SessionRegistry live on app.state for the chat gateway and the routes
- At shutdown all interactive sessions are closed, then the client

Middleware Ordering:
- RequestIDMiddleware is added last so it runs first (outermost)
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session, sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from mokuroku.api.routes import create_api_router
from mokuroku.config import get_settings
from mokuroku.db.engine import ensure_schema
from mokuroku.db.session import get_session_factory
from mokuroku.errors import ApiError
from mokuroku.logging import configure_logging, get_logger
from mokuroku.middleware.request_id import RequestIDMiddleware
from mokuroku.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from mokuroku.services.catalog import CatalogSource
from mokuroku.services.context import build_session_context
from mokuroku.services.lookup import SessionRegistry

logger = get_logger(__name__)


def create_lifespan(
    session_factory: sessionmaker[Session] | None = None,
    catalog: CatalogSource | None = None,
):
    """Build the lifespan handler for the given store and catalog overrides."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        factory = session_factory or get_session_factory()
        ensure_schema(factory.kw["bind"])

        # Shared HTTP client for catalog fetches
        app.state.httpx_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.catalog_timeout_s, connect=5.0),
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
        )
        app.state.session_context = build_session_context(
            settings, app.state.httpx_client, factory, catalog=catalog
        )
        app.state.session_registry = SessionRegistry()

        logger.info(
            "session_context_initialized",
            session_timeout_s=settings.session_timeout_s,
            search_page_size=settings.search_page_size,
        )

        yield

        await app.state.session_registry.close_all()
        await app.state.httpx_client.aclose()
        logger.info("httpx_client_closed")

    return lifespan


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    catalog: CatalogSource | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Store session factory (defaults to the configured database).
        catalog: Catalog source override (defaults to AniList over the shared client).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Mokuroku API",
        description="Anime and manga lookups with per-user watch lists",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=create_lifespan(session_factory, catalog),
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    Call this after all other middleware is added, so it runs first.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
