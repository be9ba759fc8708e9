"""Tests for logging context and output.

Covers:
- Logging ContextVars (request, path, method, session, actor)
- Session context stays local to the task that set it
- JSON log lines carry the bound context
- Event taxonomy correctness
"""

import asyncio
import io
import json
import logging

import pytest
import structlog

from mokuroku.logging import (
    add_request_context,
    clear_request_context,
    clear_session_context,
    configure_logging,
    set_actor_context,
    set_request_context,
    set_session_context,
)

# ─── ContextVar Tests ────────────────────────────────────────────────


class TestContextVars:
    def setup_method(self):
        clear_request_context()
        clear_session_context()

    def teardown_method(self):
        clear_request_context()
        clear_session_context()

    def test_request_context_injected(self):
        set_request_context("req-1", path="/users/1/watchlist", method="GET")
        event_dict = add_request_context(None, "info", {})
        assert event_dict == {
            "request_id": "req-1",
            "path": "/users/1/watchlist",
            "method": "GET",
        }

    def test_session_and_actor_injected(self):
        set_session_context("msg-1", actor_id="42")
        event_dict = add_request_context(None, "info", {})
        assert event_dict["session_id"] == "msg-1"
        assert event_dict["actor_id"] == "42"

    def test_actor_replaced_per_event(self):
        set_session_context("msg-1")
        set_actor_context("7")
        assert add_request_context(None, "info", {})["actor_id"] == "7"

        set_actor_context(None)
        assert "actor_id" not in add_request_context(None, "info", {})

    def test_clear_clears_all(self):
        set_request_context("req-1", path="/health", method="GET")
        set_session_context("msg-1", actor_id="42")
        clear_request_context()
        clear_session_context()

        assert add_request_context(None, "info", {}) == {}

    def test_existing_keys_kept(self):
        set_request_context("req-1")
        event_dict = add_request_context(None, "info", {"event": "x", "item_id": 20})
        assert event_dict == {"event": "x", "item_id": 20, "request_id": "req-1"}

    @pytest.mark.asyncio
    async def test_session_context_is_task_local(self):
        seen = {}

        async def session_task(session_id):
            set_session_context(session_id)
            await asyncio.sleep(0)
            seen[session_id] = add_request_context(None, "info", {}).get("session_id")

        await asyncio.gather(session_task("msg-a"), session_task("msg-b"))

        assert seen == {"msg-a": "msg-a", "msg-b": "msg-b"}
        assert "session_id" not in add_request_context(None, "info", {})


# ─── Log Output ──────────────────────────────────────────────────────


@pytest.fixture
def json_log_stream():
    """Configure JSON logging and capture the root handler's output."""
    configure_logging(json_format=True)
    stream = io.StringIO()
    logging.getLogger().handlers[0].setStream(stream)
    yield stream
    clear_session_context()
    configure_logging(json_format=False)


class TestJsonOutput:
    def test_line_carries_context(self, json_log_stream):
        set_session_context("msg-9", actor_id="42")
        logger = structlog.get_logger("tests.observability")

        logger.info("session.started", remaining_s=60.0)

        line = json.loads(json_log_stream.getvalue().strip().splitlines()[-1])
        assert line["event"] == "session.started"
        assert line["level"] == "info"
        assert line["logger"] == "tests.observability"
        assert line["session_id"] == "msg-9"
        assert line["actor_id"] == "42"
        assert line["remaining_s"] == 60.0
        assert "timestamp" in line

    def test_stdlib_records_formatted(self, json_log_stream):
        logging.getLogger("tests.stdlib").warning("plain stdlib message")

        line = json.loads(json_log_stream.getvalue().strip().splitlines()[-1])
        assert line["event"] == "plain stdlib message"
        assert line["level"] == "warning"

    def test_noisy_loggers_silenced(self, json_log_stream):
        logging.getLogger("httpx").info("HTTP Request: POST https://graphql.anilist.co/")

        assert json_log_stream.getvalue() == ""


# ─── Event Taxonomy Tests ────────────────────────────────────────────


class TestEventTaxonomy:
    """Event names are dotted and start with their subsystem."""

    VALID_PREFIXES = {
        "catalog.",
        "lookup.",
        "paginator.",
        "session.",
        "tracked.",
        "watchlist.",
    }

    def test_event_names_use_valid_prefix(self):
        known_events = [
            "catalog.page.requested",
            "catalog.page.fetched",
            "catalog.page.failed",
            "lookup.opened",
            "lookup.not_found",
            "paginator.page.advanced",
            "paginator.page.rewound",
            "session.started",
            "session.expired",
            "session.closed",
            "session.aborted",
            "session.failed",
            "session.crashed",
            "session.finished",
            "session.nav.failed",
            "session.task.failed",
            "session.task.cancelled",
            "tracked.page.fetched",
            "watchlist.toggle.applied",
            "watchlist.toggle.failed",
            "watchlist.store.rollback",
        ]
        for event in known_events:
            assert any(event.startswith(prefix) for prefix in self.VALID_PREFIXES), (
                f"Event {event} does not match any valid prefix"
            )
