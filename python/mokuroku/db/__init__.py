"""Database module for Mokuroku.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from mokuroku.db.engine import create_db_engine, ensure_schema, get_engine
from mokuroku.db.models import Base, MediaKind, WatchRecord, WatchStatus
from mokuroku.db.session import (
    create_session_factory,
    get_session_factory,
    transaction,
)

__all__ = [
    # Engine and session
    "create_db_engine",
    "ensure_schema",
    "get_engine",
    "create_session_factory",
    "get_session_factory",
    "transaction",
    # Base
    "Base",
    # Enums
    "WatchStatus",
    "MediaKind",
    # Models
    "WatchRecord",
]
