"""Atomic reversible toggles on per-user watch records.

Each toggle is exactly one SQL statement:

    INSERT INTO watch_records (...) VALUES (...)
    ON CONFLICT (user_id, item_id) DO UPDATE SET ...
    RETURNING *

The INSERT branch creates the record with the defaults already transformed,
the DO UPDATE branch applies the same transformation to the stored row. The
store serializes concurrent upserts on the same key, so no client-side
locking, read-then-write or retry happens here.

Transition laws (see apply_status_toggle / apply_flag_toggle):
- Status toggle to the current status swaps status and last_status, so the
  same toggle applied twice restores the previous status
- Status toggle to any other status records the old one in last_status
- Flag toggle negates suggests and never touches the status fields

Sync DB work runs through run_in_threadpool so callers stay on the event loop.
"""

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime

from sqlalchemy import case, func, literal, not_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from mokuroku.db.models import MediaKind, WatchRecord, WatchStatus
from mokuroku.db.session import transaction
from mokuroku.errors import ApiError, ApiErrorCode
from mokuroku.logging import get_logger
from mokuroku.schemas.watchlist import WatchRecordOut

logger = get_logger(__name__)

# PostgreSQL SQLSTATEs for serialization failure and deadlock
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class WatchKey:
    """Identifies one watch record: the chat user and the catalog item."""

    user_id: int
    item_id: int


@dataclass(frozen=True)
class ItemSnapshot:
    """Catalog details stored alongside a record for offline listings."""

    title: str | None = None
    start_date: date | None = None
    kind: MediaKind = MediaKind.anime


@dataclass(frozen=True)
class ToggleState:
    """The mutable fields of a watch record."""

    status: WatchStatus = WatchStatus.not_seen
    last_status: WatchStatus = WatchStatus.not_seen
    suggests: bool = False


DEFAULT_STATE = ToggleState()


# =============================================================================
# Errors
# =============================================================================


class StoreError(ApiError):
    """Base class for watch-record store failures. The toggle had no effect."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or failed while executing the toggle."""

    def __init__(self, message: str = "Watch-record store unavailable"):
        super().__init__(ApiErrorCode.E_STORE_UNAVAILABLE, message)


class ConflictRetryExceededError(StoreError):
    """The store aborted the toggle on contention it could not resolve itself."""

    def __init__(self, message: str = "Watch-record toggle conflicted with a concurrent update"):
        super().__init__(ApiErrorCode.E_STORE_CONFLICT, message)


def classify_store_error(e: DBAPIError) -> StoreError:
    """Map a driver error from a toggle or a watch-list read to a StoreError."""
    sqlstate = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return ConflictRetryExceededError()

    message = str(e.orig) if e.orig is not None else str(e)
    if "database is locked" in message:
        return ConflictRetryExceededError()

    return StoreUnavailableError()


# =============================================================================
# Pure transitions
# =============================================================================


def apply_status_toggle(state: ToggleState, target: WatchStatus) -> ToggleState:
    """Toggle a record's status towards target.

    Same status: swap status and last_status (revert).
    Different status: last_status := status, status := target.
    """
    if state.status == target:
        return replace(state, status=state.last_status, last_status=state.status)
    return replace(state, status=target, last_status=state.status)


def apply_flag_toggle(state: ToggleState) -> ToggleState:
    return replace(state, suggests=not state.suggests)


# =============================================================================
# Store
# =============================================================================


def _insert_for(db: Session):
    """Return the dialect's INSERT construct (the one with on_conflict_do_update)."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StoreUnavailableError(f"Unsupported watch-record store dialect: {dialect}")


def _upsert(
    db: Session,
    key: WatchKey,
    snapshot: ItemSnapshot | None,
    created: ToggleState,
    update_set: dict,
) -> WatchRecordOut:
    table = WatchRecord.__table__
    snapshot = snapshot or ItemSnapshot()
    now = datetime.now(UTC)

    insert = _insert_for(db)
    stmt = insert(table).values(
        user_id=key.user_id,
        item_id=key.item_id,
        item_kind=snapshot.kind.value,
        title=snapshot.title,
        start_date=snapshot.start_date,
        status=created.status.value,
        last_status=created.last_status.value,
        suggests=created.suggests,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.item_id],
        set_={
            **update_set,
            "title": func.coalesce(stmt.excluded.title, table.c.title),
            "start_date": func.coalesce(stmt.excluded.start_date, table.c.start_date),
            "updated_at": now,
        },
    ).returning(*table.c)

    with transaction(db):
        row = db.execute(stmt).mappings().one()
    return WatchRecordOut.model_validate(dict(row))


def toggle_status_sync(
    db: Session,
    key: WatchKey,
    target: WatchStatus,
    snapshot: ItemSnapshot | None = None,
) -> WatchRecordOut:
    """Apply a status toggle in one atomic statement. See apply_status_toggle."""
    table = WatchRecord.__table__
    update_set = {
        # SET expressions read the row as it was before the update
        "status": case(
            (table.c.status == target.value, table.c.last_status),
            else_=literal(target.value),
        ),
        "last_status": table.c.status,
    }
    created = apply_status_toggle(DEFAULT_STATE, target)
    return _upsert(db, key, snapshot, created, update_set)


def toggle_flag_sync(
    db: Session,
    key: WatchKey,
    snapshot: ItemSnapshot | None = None,
) -> WatchRecordOut:
    """Negate the suggests flag in one atomic statement."""
    table = WatchRecord.__table__
    update_set = {"suggests": not_(table.c.suggests)}
    created = apply_flag_toggle(DEFAULT_STATE)
    return _upsert(db, key, snapshot, created, update_set)


class ToggleStateMachine:
    """Async facade over the watch-record toggles.

    Each call opens its own DB session from the factory, so one machine can
    be shared by every interactive session in the process.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    async def toggle_status(
        self,
        key: WatchKey,
        target: WatchStatus,
        snapshot: ItemSnapshot | None = None,
    ) -> WatchRecordOut:
        """Toggle the record for key towards target, creating it if needed.

        Raises:
            StoreUnavailableError: The store failed; nothing was written.
            ConflictRetryExceededError: The store gave up on contention; nothing was written.
        """
        return await run_in_threadpool(
            self._run, "status", toggle_status_sync, key, target, snapshot
        )

    async def toggle_flag(
        self,
        key: WatchKey,
        snapshot: ItemSnapshot | None = None,
    ) -> WatchRecordOut:
        """Negate the suggests flag for key, creating the record if needed.

        Raises:
            StoreUnavailableError: The store failed; nothing was written.
            ConflictRetryExceededError: The store gave up on contention; nothing was written.
        """
        return await run_in_threadpool(self._run, "flag", toggle_flag_sync, key, snapshot)

    def _run(self, toggle: str, fn, key: WatchKey, *args) -> WatchRecordOut:
        log_fields = {"toggle": toggle, "user_id": key.user_id, "item_id": key.item_id}
        try:
            with self._session_factory() as db:
                record = fn(db, key, *args)
        except DBAPIError as e:
            error = classify_store_error(e)
            logger.error(
                "watchlist.toggle.failed",
                error_code=error.code.value,
                error_type=type(e.orig).__name__,
                **log_fields,
            )
            raise error from e

        logger.info(
            "watchlist.toggle.applied",
            status=record.status.value,
            last_status=record.last_status.value,
            suggests=record.suggests,
            **log_fields,
        )
        return record
