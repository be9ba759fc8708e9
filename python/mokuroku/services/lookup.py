"""Catalog lookups and the registry that supervises their sessions.

open_lookup() is the "anime <name>" / "manga <name>" command: it runs the
search, renders the first result and returns the session that will drive
the message. SessionRegistry keeps one session per rendered message, runs
each session as an asyncio task and routes incoming UI events to it.
"""

import asyncio

from mokuroku.db.models import MediaKind
from mokuroku.errors import ApiErrorCode, NotFoundError
from mokuroku.logging import get_logger
from mokuroku.services.catalog import QueryPageSource, SearchQuery
from mokuroku.services.context import SessionContext
from mokuroku.services.paginator import MediaPaginator
from mokuroku.services.session import (
    Ack,
    InteractiveSession,
    RenderSink,
    ReplaceView,
    parse_ui_event,
)

logger = get_logger(__name__)


async def open_lookup(
    ctx: SessionContext,
    text: str,
    kind: MediaKind,
    sink: RenderSink,
    session_id: str | None = None,
) -> InteractiveSession:
    """Search the catalog and start an interactive session on the first result.

    Args:
        ctx: Shared session dependencies.
        text: Free-text search.
        kind: ANIME or MANGA.
        sink: Where the session's render commands go.
        session_id: Identifier for the session, usually the message id.

    Returns:
        The session, not yet running. Call run() (or SessionRegistry.start).

    Raises:
        NotFoundError: The search matched nothing; no session is created.
        TransportError, RemoteQueryError: The first page could not be fetched.
    """
    query = SearchQuery(text=text, kind=kind, page_size=ctx.search_page_size)
    paginator = await MediaPaginator.create(QueryPageSource(ctx.catalog, query))

    item = paginator.current_item()
    if item is None:
        logger.info("lookup.not_found", kind=kind.value)
        raise NotFoundError(
            ApiErrorCode.E_MEDIA_NOT_FOUND, f"Cannot find any {kind.value.lower()}..."
        )

    session = InteractiveSession(
        paginator,
        ctx.toggles,
        sink,
        ctx.timeout_s,
        session_id=session_id,
        item_kind=kind,
    )
    await sink.emit(ReplaceView(item=item, nav=paginator.nav_affordances()))
    logger.info("lookup.opened", kind=kind.value, session_id=session.session_id)
    return session


class SessionRegistry:
    """Routes UI events to the session that owns each message.

    Sessions are removed when their run() task finishes; a task that ends
    with an exception is logged with it.
    """

    def __init__(self):
        self._sessions: dict[str, InteractiveSession] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._sessions

    def get(self, message_id: str) -> InteractiveSession | None:
        return self._sessions.get(message_id)

    def start(self, message_id: str, session: InteractiveSession) -> asyncio.Task:
        """Run a session for a message. A previous session for it is closed."""
        previous = self._sessions.get(message_id)
        if previous is not None:
            previous.close()

        self._sessions[message_id] = session
        task = asyncio.create_task(session.run(), name=f"session:{message_id}")
        self._tasks[message_id] = task
        task.add_done_callback(lambda t: self._finished(message_id, session, t))
        return task

    async def dispatch(self, message_id: str, raw_id: str, actor_id: int, sink: RenderSink) -> None:
        """Deliver a raw component event to the message's session.

        The event's render command is emitted to sink, the acting user's
        interaction. Events for messages without a live session are
        acknowledged there.

        Raises:
            InvalidEventError: If raw_id is not a known component id.
        """
        event = parse_ui_event(raw_id, actor_id, reply_to=sink)
        session = self._sessions.get(message_id)
        if session is None:
            await sink.emit(Ack())
            return
        await session.submit(event)

    def close(self, message_id: str) -> bool:
        """Close the message's session, e.g. after the message was deleted."""
        session = self._sessions.get(message_id)
        if session is None:
            return False
        session.close()
        return True

    async def close_all(self) -> None:
        """Close every session and wait for their tasks to finish."""
        for session in list(self._sessions.values()):
            session.close()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _finished(self, message_id: str, session: InteractiveSession, task: asyncio.Task) -> None:
        if self._sessions.get(message_id) is session:
            del self._sessions[message_id]
            self._tasks.pop(message_id, None)

        if task.cancelled():
            logger.warning("session.task.cancelled", session_id=session.session_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "session.task.failed",
                session_id=session.session_id,
                error_type=type(exc).__name__,
                exc_info=exc,
            )
