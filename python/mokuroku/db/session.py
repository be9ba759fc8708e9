"""Session factories for the watch-record store.

Nothing here is request-scoped: the toggles and TrackedItemSource each open
a short-lived session per call from the factory they were given, usually
the process-wide one from get_session_factory().
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from mokuroku.db.engine import get_engine
from mokuroku.logging import get_logger

logger = get_logger(__name__)

_default_factory: sessionmaker[Session] | None = None


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Sessions on engine (the configured database when omitted).

    Loaded records stay readable after commit, since toggle results are
    serialized once the session has closed.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


def get_session_factory() -> sessionmaker[Session]:
    global _default_factory
    if _default_factory is None:
        _default_factory = create_session_factory()
    return _default_factory


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the block's writes, or roll them back and re-raise."""
    try:
        yield
        db.commit()
    except Exception as e:
        logger.debug("watchlist.store.rollback", error_type=type(e).__name__)
        db.rollback()
        raise
