"""Bounded interactive session over one paginator.

An InteractiveSession binds a MediaPaginator and a ToggleStateMachine to
the ordered stream of UI events coming from one rendered message, and
emits render commands to a sink.

States:
    ACTIVE -> EXPIRED   the fixed deadline passed
    ACTIVE -> FAILED    a toggle hit a store failure, or dispatch raised
    ACTIVE -> CLOSED    close() was called, e.g. the message was deleted
All three are terminal.

Rules:
- The deadline is fixed at construction; processing events never extends it
- Events are dispatched one at a time, in arrival order
- Every processed event produces exactly one render command, sent to the
  event's reply_to sink when it has one, else to the session sink
- Events that arrive (or are still queued) once the session is no longer
  ACTIVE are acknowledged with Ack() and otherwise ignored
- EXPIRED and FAILED emit ClearControls() exactly once, to the session
  sink; close() emits nothing
- Navigation fetch failures of any kind are absorbed (Ack, view unchanged)
- Toggle failures produce an error reply and end the session as FAILED;
  run() re-raises them to the supervisor. Controls are cleared so the
  message does not keep buttons nothing listens to any more
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
from uuid import uuid4

from mokuroku.db.models import MediaKind, WatchStatus
from mokuroku.errors import ApiErrorCode, InvalidRequestError
from mokuroku.logging import (
    clear_session_context,
    get_logger,
    set_actor_context,
    set_session_context,
)
from mokuroku.schemas.catalog import FuzzyDate
from mokuroku.schemas.watchlist import WatchRecordOut
from mokuroku.services.catalog.errors import CatalogError
from mokuroku.services.paginator import Item, MediaPaginator, NavAffordances
from mokuroku.services.watchlist import ItemSnapshot, StoreError, ToggleStateMachine, WatchKey

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 60.0

# =============================================================================
# UI events
# =============================================================================


class UiEventKind(str, Enum):
    """The closed set of things a user can do to an interactive message."""

    nav_prev = "NAV_PREV"
    nav_next = "NAV_NEXT"
    toggle_watch = "TOGGLE_WATCH"
    toggle_finish = "TOGGLE_FINISH"
    toggle_suggest = "TOGGLE_SUGGEST"


# Chat component ids, as attached to the message buttons
COMPONENT_IDS: dict[str, UiEventKind] = {
    "PREV_PAGE": UiEventKind.nav_prev,
    "NEXT_PAGE": UiEventKind.nav_next,
    "WATCH": UiEventKind.toggle_watch,
    "FINISH": UiEventKind.toggle_finish,
    "SUGGEST": UiEventKind.toggle_suggest,
}

STATUS_TARGETS: dict[UiEventKind, WatchStatus] = {
    UiEventKind.toggle_watch: WatchStatus.consuming,
    UiEventKind.toggle_finish: WatchStatus.finished,
}


@dataclass(frozen=True)
class UiEvent:
    """One user action on an interactive message.

    reply_to is the sink of the interaction that carried the event (e.g. the
    clicking user's interaction); the event's render command goes there.
    """

    kind: UiEventKind
    actor_id: int
    reply_to: "RenderSink | None" = field(default=None, compare=False, repr=False)


class InvalidEventError(InvalidRequestError):
    """A UI event that does not map to any UiEventKind."""

    def __init__(self, message: str = "Unknown UI event"):
        super().__init__(ApiErrorCode.E_INVALID_EVENT, message)


def parse_ui_event(raw_id: str, actor_id: int, reply_to: "RenderSink | None" = None) -> UiEvent:
    """Validate a raw component id at the boundary.

    Accepts both chat component ids ("NEXT_PAGE") and event kind values
    ("NAV_NEXT").

    Raises:
        InvalidEventError: If raw_id names no known event.
    """
    kind = COMPONENT_IDS.get(raw_id)
    if kind is None:
        try:
            kind = UiEventKind(raw_id)
        except ValueError:
            raise InvalidEventError(f"Unknown UI event: {raw_id!r}") from None
    return UiEvent(kind=kind, actor_id=actor_id, reply_to=reply_to)


# =============================================================================
# Render commands
# =============================================================================


@dataclass(frozen=True)
class ReplaceView:
    """Re-render the message with a new item and navigation controls."""

    item: Item
    nav: NavAffordances


@dataclass(frozen=True)
class EphemeralReply:
    """A reply only the acting user sees."""

    text: str
    title: str | None = None
    is_error: bool = False


@dataclass(frozen=True)
class ClearControls:
    """Strip the interactive controls from the message."""


@dataclass(frozen=True)
class Ack:
    """Acknowledge the event without changing anything visible."""


RenderCommand = ReplaceView | EphemeralReply | ClearControls | Ack


class RenderSink(Protocol):
    async def emit(self, command: RenderCommand) -> None: ...


# =============================================================================
# Reply text
# =============================================================================

STATUS_VERBS = {
    WatchStatus.finished: "finished",
    WatchStatus.consuming: "are watching",
    WatchStatus.not_seen: "forgot",
}

STATUS_EMOJI = {
    WatchStatus.finished: "🏁",
    WatchStatus.consuming: "👀",
    WatchStatus.not_seen: "❓",
}

ERROR_REPLY_TEXT = "There is an error‼"


def status_reply_text(record: WatchRecordOut) -> str:
    text = f"You {STATUS_VERBS[record.status]} _it_ {STATUS_EMOJI[record.status]}"
    if record.suggests:
        text += "\nYou are suggesting _it_ 🌟"
    return text


def suggest_reply_text(record: WatchRecordOut) -> str:
    if record.suggests:
        return "You are now suggesting _it_ 🌟"
    return "You are no longer suggesting _it_"


def item_snapshot(item: Item, kind: MediaKind) -> ItemSnapshot:
    """Capture what the watch list needs to list an item without the catalog."""
    start = getattr(item, "start_date", None)
    if isinstance(start, FuzzyDate):
        start = start.to_date()
    return ItemSnapshot(title=item.display_title, start_date=start, kind=kind)


# =============================================================================
# Session
# =============================================================================


class SessionStatus(str, Enum):
    active = "active"
    expired = "expired"
    failed = "failed"
    closed = "closed"


class InteractiveSession:
    """One bounded interactive exchange tied to a single rendered message.

    Usage:
        session = InteractiveSession(paginator, toggles, sink, timeout_s=60)
        task = asyncio.create_task(session.run())
        await session.submit(parse_ui_event("NEXT_PAGE", actor_id, reply_to=interaction))
    """

    def __init__(
        self,
        paginator: MediaPaginator,
        toggles: ToggleStateMachine,
        sink: RenderSink,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        session_id: str | None = None,
        item_kind: MediaKind = MediaKind.anime,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.paginator = paginator
        self.session_id = session_id or uuid4().hex
        self.item_kind = item_kind
        self.status = SessionStatus.active
        self._toggles = toggles
        self._sink = sink
        self._clock = clock
        self.deadline = clock() + timeout_s
        self._queue: asyncio.Queue[UiEvent | None] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._handlers: dict[UiEventKind, Callable[[UiEvent], Awaitable[None]]] = {
            UiEventKind.nav_prev: self._navigate,
            UiEventKind.nav_next: self._navigate,
            UiEventKind.toggle_watch: self._toggle_status,
            UiEventKind.toggle_finish: self._toggle_status,
            UiEventKind.toggle_suggest: self._toggle_suggest,
        }

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.active

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(self.deadline - self._clock(), 0.0)

    async def submit(self, event: UiEvent) -> None:
        """Queue an event for processing, or acknowledge it if the session is over."""
        if not self.is_active:
            await self._reply(event, Ack())
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        """End the session without clearing controls. No-op once terminal."""
        if not self.is_active:
            return
        self.status = SessionStatus.closed
        logger.info("session.closed", session_id=self.session_id)
        # Wake the run loop if it is waiting for an event
        self._queue.put_nowait(None)

    async def run(self) -> SessionStatus:
        """Process events until the session expires, fails or is closed.

        Returns:
            The terminal status.

        Raises:
            StoreError: A toggle failed; the session has already failed and
                the error reply has been emitted.
            Exception: Anything else dispatch raised, after the same teardown.
        """
        set_session_context(self.session_id)
        logger.info("session.started", remaining_s=round(self.remaining(), 3))
        try:
            await self._loop()
        except StoreError as e:
            logger.error("session.aborted", error_code=e.code.value)
            await self._end(SessionStatus.failed)
            raise
        except Exception:
            logger.exception("session.crashed")
            await self._end(SessionStatus.failed)
            raise
        finally:
            await self._drain()
            logger.info("session.finished", status=self.status.value)
            clear_session_context()
        return self.status

    async def _loop(self) -> None:
        while self.is_active:
            remaining = self.deadline - self._clock()
            if remaining <= 0:
                await self._end(SessionStatus.expired)
                return
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=remaining)
            except TimeoutError:
                await self._end(SessionStatus.expired)
                return

            if event is None or not self.is_active:
                if event is not None:
                    await self._reply(event, Ack())
                continue

            await self._dispatch(event)

    async def _dispatch(self, event: UiEvent) -> None:
        async with self._lock:
            set_actor_context(str(event.actor_id))
            try:
                await self._handlers[event.kind](event)
            finally:
                set_actor_context(None)

    async def _reply(self, event: UiEvent, command: RenderCommand) -> None:
        await (event.reply_to or self._sink).emit(command)

    async def _end(self, status: SessionStatus) -> None:
        """Leave ACTIVE for status and clear the message controls, once."""
        if not self.is_active:
            return
        self.status = status
        logger.info(f"session.{status.value}")
        await self._sink.emit(ClearControls())

    async def _drain(self) -> None:
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if event is not None:
                await self._reply(event, Ack())

    async def _navigate(self, event: UiEvent) -> None:
        if event.kind is UiEventKind.nav_prev:
            move = self.paginator.prev_item
        else:
            move = self.paginator.next_item

        try:
            item = await move()
        except (CatalogError, StoreError) as e:
            logger.warning("session.nav.failed", kind=event.kind.value, error_code=e.code.value)
            await self._reply(event, Ack())
            return
        except Exception as e:
            # Unclassified page-source failure
            logger.warning(
                "session.nav.failed",
                kind=event.kind.value,
                error_type=type(e).__name__,
                exc_info=e,
            )
            await self._reply(event, Ack())
            return

        if item is None:
            await self._reply(event, Ack())
            return
        await self._reply(event, ReplaceView(item=item, nav=self.paginator.nav_affordances()))

    async def _toggle_status(self, event: UiEvent) -> None:
        target = STATUS_TARGETS[event.kind]
        await self._toggle(
            event,
            lambda key, snapshot: self._toggles.toggle_status(key, target, snapshot),
            status_reply_text,
        )

    async def _toggle_suggest(self, event: UiEvent) -> None:
        await self._toggle(event, self._toggles.toggle_flag, suggest_reply_text)

    async def _toggle(
        self,
        event: UiEvent,
        apply: Callable[[WatchKey, ItemSnapshot], Awaitable[WatchRecordOut]],
        reply_text: Callable[[WatchRecordOut], str],
    ) -> None:
        item = self.paginator.current_item()
        if item is None:
            await self._reply(event, Ack())
            return

        key = WatchKey(user_id=event.actor_id, item_id=item.id)
        try:
            record = await apply(key, item_snapshot(item, self.item_kind))
        except Exception:
            await self._reply(event, EphemeralReply(ERROR_REPLY_TEXT, is_error=True))
            raise

        await self._reply(event, EphemeralReply(reply_text(record), title=item.display_title))
