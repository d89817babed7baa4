"""
LogFluent Insight - Log Store
=============================

Persistence for logs, chat sessions and chat messages.

Two backends:
- InMemoryLogStore: process-local dicts, for development and tests
- SupabaseLogStore: Supabase PostgREST tables plus a Storage bucket

Both enforce the log status lifecycle
uploaded -> processing -> {completed, error}.
"""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Optional
import time
import uuid
from urllib.parse import quote

import httpx

from logfluent.api.schemas import (
    Log,
    LogStatus,
    ChatSession,
    ChatMessage,
    MessageRole,
    utc_now,
)
from logfluent.config import get_settings, StoreProvider
from logfluent.core.errors import (
    LogNotFoundError,
    SessionNotFoundError,
    InvalidStatusTransition,
    StoreError,
)
from logfluent.utils.http_client import ServiceClient, ServiceClientConfig
from logfluent.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_store_instance: Optional["BaseLogStore"] = None

# Postgres SQLSTATE reported by PostgREST for a dangling reference
FOREIGN_KEY_VIOLATION = "23503"


def make_file_path(filename: str) -> str:
    """Storage object path for an upload, unique per millisecond."""
    return f"logs/{int(time.time() * 1000)}-{filename}"


def allowed_sources(target: LogStatus) -> list[LogStatus]:
    """Statuses from which an update to ``target`` is accepted."""
    return [s for s in LogStatus if s == target or s.can_transition_to(target)]


class BaseLogStore(ABC):
    """Base class for record stores."""

    async def initialize(self) -> None:
        """Prepare connections."""

    async def shutdown(self) -> None:
        """Release connections."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the store can serve requests."""

    @abstractmethod
    async def create_log(
        self,
        filename: str,
        content: str,
        file_path: Optional[str] = None
    ) -> Log:
        """Insert a log with status ``uploaded``."""

    @abstractmethod
    async def get_log(self, log_id: str) -> Log:
        """Fetch a log or raise LogNotFoundError."""

    @abstractmethod
    async def update_log(
        self,
        log_id: str,
        status: Optional[LogStatus] = None,
        summary: Optional[str] = None,
        original_content: Optional[str] = None
    ) -> Log:
        """
        Update a log's fields.

        Raises:
            LogNotFoundError: no such log
            InvalidStatusTransition: the status change would go backwards
        """

    @abstractmethod
    async def upload_file(
        self,
        path: str,
        data: bytes,
        content_type: str = "text/plain"
    ) -> None:
        """Store the raw uploaded file."""

    @abstractmethod
    async def create_session(self, log_id: str, title: Optional[str] = None) -> ChatSession:
        """Open a new chat session for a log."""

    @abstractmethod
    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str
    ) -> ChatMessage:
        """
        Append a message to a session.

        Raises:
            SessionNotFoundError: no such session
        """

    @abstractmethod
    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        """
        All messages of a session, oldest first.

        Raises:
            SessionNotFoundError: no such session
        """

    @abstractmethod
    async def recent_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        """
        The ``limit`` newest messages of a session, oldest first.

        Raises:
            SessionNotFoundError: no such session
        """


class InMemoryLogStore(BaseLogStore):
    """
    Thread-safe in-memory store.

    Messages keep insertion order per session, which is also their
    creation-time order.
    """

    def __init__(self):
        self._logs: dict[str, Log] = {}
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[ChatMessage]] = {}
        self._files: dict[str, bytes] = {}
        self._lock = Lock()

    def is_ready(self) -> bool:
        return True

    async def create_log(
        self,
        filename: str,
        content: str,
        file_path: Optional[str] = None
    ) -> Log:
        log = Log(
            id=str(uuid.uuid4()),
            filename=filename,
            file_path=file_path,
            original_content=content,
            status=LogStatus.UPLOADED,
        )
        with self._lock:
            self._logs[log.id] = log
        logger.info(f"Created log {log.id}", extra={"log_id": log.id, "log_filename": filename})
        return log

    async def get_log(self, log_id: str) -> Log:
        log = self._logs.get(log_id)
        if log is None:
            raise LogNotFoundError(log_id)
        return log

    async def update_log(
        self,
        log_id: str,
        status: Optional[LogStatus] = None,
        summary: Optional[str] = None,
        original_content: Optional[str] = None
    ) -> Log:
        with self._lock:
            log = self._logs.get(log_id)
            if log is None:
                raise LogNotFoundError(log_id)

            updates: dict[str, Any] = {}
            if status is not None:
                if log.status not in allowed_sources(status):
                    raise InvalidStatusTransition(log_id, log.status.value, status.value)
                updates["status"] = status
            if summary is not None:
                updates["summary"] = summary
            if original_content is not None:
                updates["original_content"] = original_content

            updated = log.model_copy(update=updates)
            self._logs[log_id] = updated
            return updated

    async def upload_file(
        self,
        path: str,
        data: bytes,
        content_type: str = "text/plain"
    ) -> None:
        with self._lock:
            self._files[path] = data

    def get_file(self, path: str) -> Optional[bytes]:
        """Raw bytes stored at ``path``, if any."""
        return self._files.get(path)

    async def create_session(self, log_id: str, title: Optional[str] = None) -> ChatSession:
        if log_id not in self._logs:
            raise LogNotFoundError(log_id)

        session = ChatSession(id=str(uuid.uuid4()), log_id=log_id, title=title)
        with self._lock:
            self._sessions[session.id] = session
            self._messages[session.id] = []
        return session

    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str
    ) -> ChatMessage:
        with self._lock:
            if session_id not in self._sessions:
                raise SessionNotFoundError(session_id)

            message = ChatMessage(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role=role,
                content=content,
                created_at=utc_now(),
            )
            self._messages[session_id].append(message)
            return message

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        if session_id not in self._sessions:
            raise SessionNotFoundError(session_id)
        return list(self._messages[session_id])

    async def recent_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        messages = await self.list_messages(session_id)
        if limit <= 0:
            return []
        return messages[-limit:]


class SupabaseLogStore(BaseLogStore):
    """
    Store backed by a Supabase project.

    Tables are reached through PostgREST (``/rest/v1``) and raw files
    through Storage (``/storage/v1``), authenticated with the
    service-role key.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        bucket: str = "log-files",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url.rstrip("/")
        self.bucket = bucket
        self._service_key = service_key
        self._client: Optional[ServiceClient] = None
        if self.url and service_key:
            self._client = ServiceClient(
                self.url,
                ServiceClientConfig(
                    timeout_seconds=timeout_seconds,
                    default_headers={
                        "apikey": service_key,
                        "Authorization": f"Bearer {service_key}",
                    }
                ),
                transport=transport
            )

    async def shutdown(self) -> None:
        if self._client:
            await self._client.close()

    def is_ready(self) -> bool:
        return self._client is not None

    def _rest(self) -> ServiceClient:
        if self._client is None:
            raise StoreError("Supabase credentials not configured")
        return self._client

    @staticmethod
    def _rows(response: httpx.Response, action: str) -> list[dict]:
        if response.status_code >= 400:
            raise StoreError(f"Failed to {action}: {response.text}")
        return response.json()

    async def _insert(self, table: str, row: dict) -> dict:
        response = await self._rest().post(
            f"/rest/v1/{table}",
            data=row,
            headers={"Prefer": "return=representation"}
        )
        rows = self._rows(response, f"insert into {table}")
        return rows[0]

    async def create_log(
        self,
        filename: str,
        content: str,
        file_path: Optional[str] = None
    ) -> Log:
        row = await self._insert("logs", {
            "filename": filename,
            "file_path": file_path,
            "original_content": content,
            "status": LogStatus.UPLOADED.value,
        })
        log = Log(**row)
        logger.info(f"Created log {log.id}", extra={"log_id": log.id, "log_filename": filename})
        return log

    async def get_log(self, log_id: str) -> Log:
        response = await self._rest().get(
            "/rest/v1/logs",
            params={"id": f"eq.{log_id}", "select": "*"}
        )
        rows = self._rows(response, "fetch log")
        if not rows:
            raise LogNotFoundError(log_id)
        return Log(**rows[0])

    async def update_log(
        self,
        log_id: str,
        status: Optional[LogStatus] = None,
        summary: Optional[str] = None,
        original_content: Optional[str] = None
    ) -> Log:
        body: dict[str, Any] = {}
        params = {"id": f"eq.{log_id}"}

        if status is not None:
            body["status"] = status.value
            # Conditional update: only rows still in a valid source status match
            sources = ",".join(s.value for s in allowed_sources(status))
            params["status"] = f"in.({sources})"
        if summary is not None:
            body["summary"] = summary
        if original_content is not None:
            body["original_content"] = original_content

        response = await self._rest().patch(
            "/rest/v1/logs",
            data=body,
            params=params,
            headers={"Prefer": "return=representation"}
        )
        rows = self._rows(response, "update log")

        if not rows:
            # Either the log is missing or its status filter did not match
            current = await self.get_log(log_id)
            if status is None:
                raise StoreError(f"Failed to update log {log_id}")
            raise InvalidStatusTransition(log_id, current.status.value, status.value)
        return Log(**rows[0])

    async def upload_file(
        self,
        path: str,
        data: bytes,
        content_type: str = "text/plain"
    ) -> None:
        response = await self._rest().request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{quote(path, safe='/')}",
            content=data,
            headers={"Content-Type": content_type}
        )
        if response.status_code >= 400:
            raise StoreError(f"Failed to upload file: {response.text}")

    async def create_session(self, log_id: str, title: Optional[str] = None) -> ChatSession:
        row = await self._insert("chat_sessions", {"log_id": log_id, "title": title})
        return ChatSession(**row)

    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str
    ) -> ChatMessage:
        response = await self._rest().post(
            "/rest/v1/chat_messages",
            data={
                "session_id": session_id,
                "role": role.value,
                "content": content,
            },
            headers={"Prefer": "return=representation"}
        )
        if response.status_code == 409 and self._error_code(response) == FOREIGN_KEY_VIOLATION:
            raise SessionNotFoundError(session_id)
        rows = self._rows(response, "insert into chat_messages")
        return ChatMessage(**rows[0])

    @staticmethod
    def _error_code(response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get("code")
        except ValueError:
            return None

    async def _require_session(self, session_id: str) -> None:
        response = await self._rest().get(
            "/rest/v1/chat_sessions",
            params={"id": f"eq.{session_id}", "select": "id"}
        )
        if not self._rows(response, "fetch session"):
            raise SessionNotFoundError(session_id)

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        response = await self._rest().get(
            "/rest/v1/chat_messages",
            params={
                "session_id": f"eq.{session_id}",
                "select": "*",
                "order": "created_at.asc",
            }
        )
        rows = self._rows(response, "fetch messages")
        if not rows:
            # An empty session and a missing one look alike here
            await self._require_session(session_id)
        return [ChatMessage(**row) for row in rows]

    async def recent_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        await self._require_session(session_id)
        if limit <= 0:
            return []
        response = await self._rest().get(
            "/rest/v1/chat_messages",
            params={
                "session_id": f"eq.{session_id}",
                "select": "*",
                "order": "created_at.desc",
                "limit": str(limit),
            }
        )
        rows = self._rows(response, "fetch previous messages")
        return [ChatMessage(**row) for row in reversed(rows)]


def get_log_store() -> BaseLogStore:
    """
    Get the singleton store instance.

    Returns the backend selected by ``STORE_PROVIDER``.
    """
    global _store_instance

    if _store_instance is None:
        if settings.store_provider == StoreProvider.SUPABASE:
            _store_instance = SupabaseLogStore(
                url=settings.supabase_url,
                service_key=settings.supabase_service_role_key,
                bucket=settings.supabase_storage_bucket,
                timeout_seconds=settings.store_timeout_seconds
            )
        else:
            _store_instance = InMemoryLogStore()

    return _store_instance
