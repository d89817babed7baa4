"""
LogFluent Insight - API Schemas
===============================

Pydantic models for stored records and the HTTP API.

Handler request/response bodies use camelCase keys (``logId``,
``sessionId``); Python code uses the snake_case field names.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogStatus(str, Enum):
    """Lifecycle status of an uploaded log."""
    UPLOADED = "uploaded"       # Stored, summarization not started
    PROCESSING = "processing"   # Summarizer is waiting on the LLM
    COMPLETED = "completed"     # Summary stored
    ERROR = "error"             # Summarization failed
    
    def can_transition_to(self, target: "LogStatus") -> bool:
        """Whether a log may move from this status to ``target``."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[LogStatus, frozenset[LogStatus]] = {
    LogStatus.UPLOADED: frozenset({LogStatus.PROCESSING, LogStatus.ERROR}),
    LogStatus.PROCESSING: frozenset({LogStatus.COMPLETED, LogStatus.ERROR}),
    LogStatus.COMPLETED: frozenset(),
    LogStatus.ERROR: frozenset(),
}


class MessageRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


# =============================================================================
# STORED RECORDS
# =============================================================================

class Log(BaseModel):
    """An uploaded log file and its analysis state."""
    
    id: str = Field(..., description="Unique log identifier")
    filename: str = Field(..., description="Original file name")
    file_path: Optional[str] = Field(
        None,
        description="Object path of the raw file in the storage bucket"
    )
    original_content: Optional[str] = Field(
        None,
        description="Raw log text"
    )
    summary: Optional[str] = Field(
        None,
        description="LLM-generated summary, set once analysis completes"
    )
    status: LogStatus = Field(
        default=LogStatus.UPLOADED,
        description="Analysis status"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="Upload time"
    )


class ChatSession(BaseModel):
    """A conversation thread about one log."""
    
    id: str = Field(..., description="Unique session identifier")
    log_id: str = Field(..., description="Log this conversation is about")
    title: Optional[str] = Field(None, description="Display title")
    created_at: datetime = Field(default_factory=utc_now)


class ChatMessage(BaseModel):
    """One message in a chat session."""
    
    id: str = Field(..., description="Unique message identifier")
    session_id: str = Field(..., description="Owning chat session")
    role: MessageRole = Field(..., description="Who wrote the message")
    content: str = Field(..., description="Message text")
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# API REQUESTS / RESPONSES
# =============================================================================

class LogCreateRequest(BaseModel):
    """Request to store a newly uploaded log."""
    
    filename: str = Field(..., min_length=1, description="Original file name")
    content: str = Field(..., description="Decoded log text")


class SummarizeRequest(BaseModel):
    """Request to summarize a stored log."""
    
    log_id: str = Field(..., min_length=1, alias="logId")
    content: str = Field(..., min_length=1, description="Raw log text")
    
    class Config:
        populate_by_name = True


class SummarizeResponse(BaseModel):
    """Result of a successful summarization."""
    
    success: bool = True
    summary: str
    log_id: str = Field(..., alias="logId")
    
    class Config:
        populate_by_name = True


class ChatRequest(BaseModel):
    """A user question about a log."""
    
    session_id: str = Field(..., min_length=1, alias="sessionId")
    message: str = Field(..., min_length=1)
    log_id: str = Field(..., min_length=1, alias="logId")
    
    class Config:
        populate_by_name = True


class ChatResponse(BaseModel):
    """The assistant's reply."""
    
    success: bool = True
    response: str
