"""
LogFluent Insight - Log Store Tests
===================================

Unit tests for the in-memory and Supabase stores.
"""

import json
import re

import httpx
import pytest

from logfluent.api.schemas import LogStatus, MessageRole
from logfluent.core.errors import (
    InvalidStatusTransition,
    LogNotFoundError,
    SessionNotFoundError,
    StoreError,
)
from logfluent.core.log_store import (
    InMemoryLogStore,
    SupabaseLogStore,
    allowed_sources,
    make_file_path,
)


class TestStatusLifecycle:
    """Tests for the log status transition rules."""

    def test_forward_transitions_allowed(self):
        """Test the documented forward transitions."""
        assert LogStatus.UPLOADED.can_transition_to(LogStatus.PROCESSING)
        assert LogStatus.PROCESSING.can_transition_to(LogStatus.COMPLETED)
        assert LogStatus.PROCESSING.can_transition_to(LogStatus.ERROR)
        assert LogStatus.UPLOADED.can_transition_to(LogStatus.ERROR)

    def test_backward_transitions_rejected(self):
        """Test that terminal and earlier states cannot be re-entered."""
        assert not LogStatus.PROCESSING.can_transition_to(LogStatus.UPLOADED)
        assert not LogStatus.COMPLETED.can_transition_to(LogStatus.PROCESSING)
        assert not LogStatus.ERROR.can_transition_to(LogStatus.COMPLETED)
        assert not LogStatus.COMPLETED.can_transition_to(LogStatus.ERROR)

    def test_allowed_sources(self):
        """Test source statuses accepted for each target."""
        assert allowed_sources(LogStatus.PROCESSING) == [LogStatus.UPLOADED, LogStatus.PROCESSING]
        assert allowed_sources(LogStatus.COMPLETED) == [LogStatus.PROCESSING, LogStatus.COMPLETED]

    def test_make_file_path(self):
        """Test storage paths are prefixed and timestamped."""
        assert re.fullmatch(r"logs/\d{13}-app\.log", make_file_path("app.log"))


class TestInMemoryLogStore:
    """Tests for InMemoryLogStore."""

    @pytest.fixture
    def store(self):
        return InMemoryLogStore()

    @pytest.mark.asyncio
    async def test_create_and_get_log(self, store):
        """Test a new log starts as uploaded and can be read back."""
        log = await store.create_log("app.log", "line 1\nline 2", "logs/1-app.log")

        fetched = await store.get_log(log.id)

        assert fetched.status == LogStatus.UPLOADED
        assert fetched.filename == "app.log"
        assert fetched.original_content == "line 1\nline 2"
        assert fetched.summary is None

    @pytest.mark.asyncio
    async def test_get_missing_log(self, store):
        """Test unknown ids raise LogNotFoundError."""
        with pytest.raises(LogNotFoundError):
            await store.get_log("missing")

    @pytest.mark.asyncio
    async def test_update_moves_forward(self, store):
        """Test the happy path status updates."""
        log = await store.create_log("app.log", "x")

        await store.update_log(log.id, status=LogStatus.PROCESSING)
        updated = await store.update_log(log.id, status=LogStatus.COMPLETED, summary="All good")

        assert updated.status == LogStatus.COMPLETED
        assert updated.summary == "All good"

    @pytest.mark.asyncio
    async def test_update_rejects_backward_move(self, store):
        """Test a completed log cannot go back to processing."""
        log = await store.create_log("app.log", "x")
        await store.update_log(log.id, status=LogStatus.PROCESSING)
        await store.update_log(log.id, status=LogStatus.COMPLETED)

        with pytest.raises(InvalidStatusTransition):
            await store.update_log(log.id, status=LogStatus.PROCESSING)

        assert (await store.get_log(log.id)).status == LogStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_update_without_status_always_allowed(self, store):
        """Test field-only updates ignore the lifecycle."""
        log = await store.create_log("app.log", "x")
        await store.update_log(log.id, status=LogStatus.ERROR)

        updated = await store.update_log(log.id, original_content="y")

        assert updated.status == LogStatus.ERROR
        assert updated.original_content == "y"

    @pytest.mark.asyncio
    async def test_upload_file(self, store):
        """Test raw bytes are kept by path."""
        await store.upload_file("logs/1-app.log", b"raw")

        assert store.get_file("logs/1-app.log") == b"raw"

    @pytest.mark.asyncio
    async def test_messages_oldest_first(self, store):
        """Test messages come back in creation order."""
        log = await store.create_log("app.log", "x")
        session = await store.create_session(log.id, "Chat about app.log")

        for i in range(3):
            await store.add_message(session.id, MessageRole.USER, f"q{i}")
            await store.add_message(session.id, MessageRole.ASSISTANT, f"a{i}")

        messages = await store.list_messages(session.id)

        assert [m.content for m in messages] == ["q0", "a0", "q1", "a1", "q2", "a2"]

    @pytest.mark.asyncio
    async def test_recent_messages_keeps_newest(self, store):
        """Test recent_messages returns the newest N, oldest first."""
        log = await store.create_log("app.log", "x")
        session = await store.create_session(log.id)
        for i in range(12):
            await store.add_message(session.id, MessageRole.USER, f"m{i}")

        recent = await store.recent_messages(session.id, 10)

        assert [m.content for m in recent] == [f"m{i}" for i in range(2, 12)]

    @pytest.mark.asyncio
    async def test_session_requires_log(self, store):
        """Test sessions cannot be opened for unknown logs."""
        with pytest.raises(LogNotFoundError):
            await store.create_session("missing")

    @pytest.mark.asyncio
    async def test_message_requires_session(self, store):
        """Test messages cannot be added to unknown sessions."""
        with pytest.raises(SessionNotFoundError):
            await store.add_message("missing", MessageRole.USER, "hi")


LOG_ROW = {
    "id": "log-1",
    "filename": "app.log",
    "file_path": "logs/1-app.log",
    "original_content": "content",
    "summary": None,
    "status": "uploaded",
    "created_at": "2024-01-15T10:30:00+00:00",
}


def make_store(handler) -> SupabaseLogStore:
    return SupabaseLogStore(
        "https://project.supabase.co",
        "service-key",
        transport=httpx.MockTransport(handler)
    )


class TestSupabaseLogStore:
    """Tests for SupabaseLogStore against a stubbed PostgREST."""

    @pytest.mark.asyncio
    async def test_create_log_inserts_row(self):
        """Test create_log posts to the logs table and parses the row."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=[LOG_ROW])

        store = make_store(handler)
        log = await store.create_log("app.log", "content", "logs/1-app.log")

        assert log.id == "log-1"
        assert seen["path"] == "/rest/v1/logs"
        assert seen["body"]["status"] == "uploaded"
        assert seen["headers"]["apikey"] == "service-key"
        assert seen["headers"]["Authorization"] == "Bearer service-key"
        assert seen["headers"]["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_get_log_not_found(self):
        """Test an empty result maps to LogNotFoundError."""
        store = make_store(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(LogNotFoundError):
            await store.get_log("missing")

    @pytest.mark.asyncio
    async def test_update_is_conditional_on_status(self):
        """Test status updates filter on the allowed source statuses."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{**LOG_ROW, "status": "processing"}])

        store = make_store(handler)
        log = await store.update_log("log-1", status=LogStatus.PROCESSING)

        assert log.status == LogStatus.PROCESSING
        assert seen["method"] == "PATCH"
        assert seen["params"]["id"] == "eq.log-1"
        assert seen["params"]["status"] == "in.(uploaded,processing)"

    @pytest.mark.asyncio
    async def test_update_rejected_transition(self):
        """Test an unmatched conditional update raises InvalidStatusTransition."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PATCH":
                return httpx.Response(200, json=[])
            return httpx.Response(200, json=[{**LOG_ROW, "status": "completed"}])

        store = make_store(handler)

        with pytest.raises(InvalidStatusTransition) as exc_info:
            await store.update_log("log-1", status=LogStatus.PROCESSING)

        assert exc_info.value.current == "completed"

    @pytest.mark.asyncio
    async def test_recent_messages_reversed(self):
        """Test newest-first rows are returned oldest-first."""
        seen = {}
        rows = [
            {"id": f"m{i}", "session_id": "s1", "role": "user",
             "content": f"m{i}", "created_at": f"2024-01-15T10:3{i}:00+00:00"}
            for i in (2, 1, 0)
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=rows)

        store = make_store(handler)
        messages = await store.recent_messages("s1", 3)

        assert [m.id for m in messages] == ["m0", "m1", "m2"]
        assert seen["params"]["order"] == "created_at.desc"
        assert seen["params"]["limit"] == "3"

    @pytest.mark.asyncio
    async def test_upload_file_targets_bucket(self):
        """Test raw files go to the storage bucket path."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["content"] = request.content
            return httpx.Response(200, json={"Key": "log-files/logs/1-app.log"})

        store = make_store(handler)
        await store.upload_file("logs/1-app.log", b"raw")

        assert seen["path"] == "/storage/v1/object/log-files/logs/1-app.log"
        assert seen["content"] == b"raw"

    @pytest.mark.asyncio
    async def test_upload_file_escapes_reserved_characters(self):
        """Test '#' and '?' in a filename stay part of the object path."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["raw_path"] = request.url.raw_path
            seen["path"] = request.url.path
            return httpx.Response(200, json={"Key": "ok"})

        store = make_store(handler)
        await store.upload_file("logs/1-build#42?.log", b"raw")

        assert seen["raw_path"] == b"/storage/v1/object/log-files/logs/1-build%2342%3F.log"
        assert seen["path"] == "/storage/v1/object/log-files/logs/1-build#42?.log"

    @pytest.mark.asyncio
    async def test_list_messages_unknown_session(self):
        """Test an empty result for a missing session raises SessionNotFoundError."""
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[])

        store = make_store(handler)

        with pytest.raises(SessionNotFoundError):
            await store.list_messages("missing")

        assert paths == ["/rest/v1/chat_messages", "/rest/v1/chat_sessions"]

    @pytest.mark.asyncio
    async def test_list_messages_empty_session(self):
        """Test an existing session without messages lists nothing."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/rest/v1/chat_sessions":
                return httpx.Response(200, json=[{"id": "s1"}])
            return httpx.Response(200, json=[])

        store = make_store(handler)

        assert await store.list_messages("s1") == []

    @pytest.mark.asyncio
    async def test_recent_messages_unknown_session(self):
        """Test history lookups for a missing session raise SessionNotFoundError."""
        store = make_store(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(SessionNotFoundError):
            await store.recent_messages("missing", 10)

    @pytest.mark.asyncio
    async def test_add_message_unknown_session(self):
        """Test a foreign-key rejection maps to SessionNotFoundError."""
        transport_reply = httpx.Response(409, json={
            "code": "23503",
            "message": "insert or update on table \"chat_messages\" violates foreign key constraint",
        })
        store = make_store(lambda request: transport_reply)

        with pytest.raises(SessionNotFoundError):
            await store.add_message("missing", MessageRole.USER, "hi")

    @pytest.mark.asyncio
    async def test_error_response_raises_store_error(self):
        """Test PostgREST errors surface as StoreError."""
        store = make_store(lambda request: httpx.Response(400, text="bad request"))

        with pytest.raises(StoreError, match="bad request"):
            await store.add_message("s1", MessageRole.USER, "hi")

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        """Test an unconfigured store fails at call time."""
        store = SupabaseLogStore("", "")

        assert store.is_ready() is False
        with pytest.raises(StoreError, match="not configured"):
            await store.get_log("log-1")
