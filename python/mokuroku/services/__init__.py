"""Business logic services.

This module contains the catalog pagination cursor, the watch-record
toggles and the interactive sessions that tie them together. Services are
called by the chat gateway and by route handlers.
"""

from mokuroku.services.context import SessionContext, build_session_context
from mokuroku.services.lookup import SessionRegistry, open_lookup
from mokuroku.services.paginator import MediaPaginator, NavAffordances, Page, PageSource
from mokuroku.services.session import InteractiveSession, SessionStatus, UiEvent, UiEventKind
from mokuroku.services.watchlist import ToggleStateMachine, WatchKey

__all__ = [
    "SessionContext",
    "build_session_context",
    "SessionRegistry",
    "open_lookup",
    "MediaPaginator",
    "NavAffordances",
    "Page",
    "PageSource",
    "InteractiveSession",
    "SessionStatus",
    "UiEvent",
    "UiEventKind",
    "ToggleStateMachine",
    "WatchKey",
]
