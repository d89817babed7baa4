"""
LogFluent Insight - Dashboard API Client
========================================

Blocking client the Streamlit screens use to reach the API.
"""

from typing import Any, Optional

import httpx

from logfluent.api.schemas import ChatMessage, ChatSession, Log


class ApiError(Exception):
    """Raised when the API answers with an error status."""
    
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class LogFluentClient:
    """Thin wrapper over the ``/api/v1`` endpoints."""
    
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 180.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/api/v1",
            timeout=timeout_seconds,
            transport=transport
        )
    
    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        response = self._client.request(method, path, json=payload)
        if response.status_code >= 400:
            raise ApiError(self._error_message(response), response.status_code)
        return response.json()
    
    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        detail = body.get("detail") or body.get("error") or body.get("message")
        if isinstance(detail, list):
            # Validation errors
            return "; ".join(str(item.get("msg", item)) for item in detail)
        return str(detail) if detail else f"HTTP {response.status_code}"
    
    def create_log(self, filename: str, content: str) -> Log:
        return Log(**self._request("POST", "/logs", {"filename": filename, "content": content}))
    
    def get_log(self, log_id: str) -> Log:
        return Log(**self._request("GET", f"/logs/{log_id}"))
    
    def summarize(self, log_id: str, content: str) -> str:
        body = self._request("POST", "/summarize-log", {"logId": log_id, "content": content})
        return body["summary"]
    
    def create_session(self, log_id: str) -> ChatSession:
        return ChatSession(**self._request("POST", f"/logs/{log_id}/sessions"))
    
    def list_messages(self, session_id: str) -> list[ChatMessage]:
        return [ChatMessage(**row) for row in self._request("GET", f"/sessions/{session_id}/messages")]
    
    def send_message(self, session_id: str, message: str, log_id: str) -> str:
        body = self._request(
            "POST",
            "/chat-log",
            {"sessionId": session_id, "message": message, "logId": log_id}
        )
        return body["response"]
