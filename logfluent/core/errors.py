"""
LogFluent Insight - Errors
==========================

Exceptions raised by the store, the LLM client and the handlers.
"""


class LogFluentError(Exception):
    """Base class for application errors."""


class LogNotFoundError(LogFluentError):
    """Raised when a log id does not exist in the store."""
    
    def __init__(self, log_id: str):
        super().__init__("Log not found")
        self.log_id = log_id


class SessionNotFoundError(LogFluentError):
    """Raised when a chat session id does not exist in the store."""
    
    def __init__(self, session_id: str):
        super().__init__("Chat session not found")
        self.session_id = session_id


class InvalidStatusTransition(LogFluentError):
    """Raised when a status update would move a log backwards."""
    
    def __init__(self, log_id: str, current: str, requested: str):
        super().__init__(
            f"Cannot move log {log_id} from '{current}' to '{requested}'"
        )
        self.log_id = log_id
        self.current = current
        self.requested = requested


class StoreError(LogFluentError):
    """Raised when the record store rejects or fails a request."""


class LLMError(LogFluentError):
    """Raised when the text-generation API call fails."""
