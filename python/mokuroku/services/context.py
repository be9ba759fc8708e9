"""Explicit dependencies for building interactive sessions.

A SessionContext is created once at startup and handed to every lookup;
sessions never reach for process-wide containers.
"""

from dataclasses import dataclass

import httpx
from sqlalchemy.orm import Session, sessionmaker

from mokuroku.config import Settings
from mokuroku.services.catalog import AniListSource, CatalogSource
from mokuroku.services.watchlist import ToggleStateMachine


@dataclass(frozen=True)
class SessionContext:
    """Handles and limits shared by all sessions.

    Attributes:
        catalog: Where searches are run
        toggles: The watch-record toggle machine (wraps the store)
        session_factory: Store sessions for watch-list listings
        timeout_s: Fixed lifetime of each interactive session
        search_page_size: Items per catalog page
        watchlist_page_size: Items per watch-list page
    """

    catalog: CatalogSource
    toggles: ToggleStateMachine
    session_factory: sessionmaker[Session]
    timeout_s: float = 60.0
    search_page_size: int = 5
    watchlist_page_size: int = 16


def build_session_context(
    settings: Settings,
    client: httpx.AsyncClient,
    session_factory: sessionmaker[Session],
    catalog: CatalogSource | None = None,
) -> SessionContext:
    """Assemble a SessionContext from settings and shared clients."""
    if catalog is None:
        catalog = AniListSource(
            client,
            api_url=settings.anilist_api_url,
            timeout_s=settings.catalog_timeout_s,
        )
    return SessionContext(
        catalog=catalog,
        toggles=ToggleStateMachine(session_factory),
        session_factory=session_factory,
        timeout_s=settings.session_timeout_s,
        search_page_size=settings.search_page_size,
        watchlist_page_size=settings.watchlist_page_size,
    )
