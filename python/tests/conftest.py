"""Pytest configuration and fixtures for Mokuroku tests.

Store strategy:
- DATABASE_URL set: tests run against that database (PostgreSQL in CI)
- Otherwise: a SQLite file in a temporary directory
- The schema is created with Base.metadata.create_all
- Tests register the user ids they write for; rows are deleted afterwards
"""

import os
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

# Settings need DATABASE_URL before any app import reads them
_sqlite_dir = tempfile.mkdtemp(prefix="mokuroku-test-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_sqlite_dir}/mokuroku.db")
os.environ.setdefault("MOKUROKU_ENV", "test")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from mokuroku.app import create_app
from mokuroku.config import clear_settings_cache
from mokuroku.db.engine import create_db_engine, ensure_schema
from mokuroku.db.session import create_session_factory
from mokuroku.services.watchlist import ToggleStateMachine
from tests.helpers import create_test_user_id
from tests.utils.db import WatchRecordManager


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    """Database engine shared by the whole test session, with the schema created."""
    engine = create_db_engine(os.environ["DATABASE_URL"])
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def watch_db(engine: Engine) -> Generator[WatchRecordManager, None, None]:
    """Direct store access; rows of registered users are deleted after the test."""
    manager = WatchRecordManager(engine)
    yield manager
    manager.cleanup()


@pytest.fixture
def toggles(session_factory: sessionmaker[Session]) -> ToggleStateMachine:
    return ToggleStateMachine(session_factory)


@pytest.fixture
def user_id(watch_db: WatchRecordManager) -> int:
    """A fresh chat user id whose records are cleaned up."""
    return watch_db.register_user(create_test_user_id())


class _UnusedCatalog:
    async def fetch(self, query, page_number):
        raise AssertionError("catalog should not be queried in this test")


@pytest.fixture
def client(session_factory: sessionmaker[Session]) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the test store, with no live catalog."""
    app = create_app(session_factory=session_factory, catalog=_UnusedCatalog())
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
