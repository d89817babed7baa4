"""
LogFluent Insight - Dashboard State
===================================

Screen routing, optimistic chat transcript and upload checks. Kept free
of Streamlit so the behaviour can be tested directly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import time

import httpx

from logfluent.api.schemas import ChatMessage, LogStatus, MessageRole
from logfluent.dashboard.client import ApiError, LogFluentClient
from logfluent.utils.logging import get_logger

logger = get_logger(__name__)


class Screen(str, Enum):
    """Top-level dashboard screens."""
    UPLOAD = "upload"
    SUMMARY = "summary"
    CHAT = "chat"


@dataclass
class ViewState:
    """Which screen is showing and for which log."""
    screen: Screen = Screen.UPLOAD
    log_id: Optional[str] = None
    filename: str = ""
    session_id: Optional[str] = None
    
    def on_log_uploaded(self, log_id: str, filename: str) -> None:
        self.log_id = log_id
        self.filename = filename
        self.session_id = None
        self.screen = Screen.SUMMARY
    
    def on_start_chat(self, log_id: str, filename: str) -> None:
        self.log_id = log_id
        self.filename = filename
        # Every visit to the chat screen opens a fresh session
        self.session_id = None
        self.screen = Screen.CHAT
    
    def back_to_summary(self) -> None:
        self.session_id = None
        self.screen = Screen.SUMMARY
    
    def back_to_upload(self) -> None:
        self.screen = Screen.UPLOAD
        self.log_id = None
        self.filename = ""
        self.session_id = None


# =============================================================================
# STATUS DISPLAY
# =============================================================================

STATUS_TEXT = {
    LogStatus.UPLOADED: "Uploaded",
    LogStatus.PROCESSING: "Analyzing...",
    LogStatus.COMPLETED: "Analysis Complete",
    LogStatus.ERROR: "Analysis Failed",
}


def status_text(status: LogStatus) -> str:
    return STATUS_TEXT.get(status, "Uploaded")


def is_pending(status: LogStatus) -> bool:
    """Whether the summary screen should keep refreshing."""
    return status in (LogStatus.UPLOADED, LogStatus.PROCESSING)


# =============================================================================
# UPLOAD CHECKS
# =============================================================================

ACCEPTED_EXTENSIONS = (".log", ".txt")


class InvalidFileType(ValueError):
    """Raised for uploads that are not plain-text logs."""


def is_log_file(filename: str, mime_type: Optional[str] = None) -> bool:
    return mime_type == "text/plain" or filename.lower().endswith(ACCEPTED_EXTENSIONS)


def extract_text(filename: str, data: bytes, mime_type: Optional[str] = None) -> str:
    """
    Decode an uploaded log file.
    
    Bytes that are not valid UTF-8 are replaced rather than rejected.
    
    Raises:
        InvalidFileType: not a .log/.txt/text-plain file
    """
    if not is_log_file(filename, mime_type):
        raise InvalidFileType("Please upload a .log or .txt file")
    return data.decode("utf-8", errors="replace")


# =============================================================================
# CHAT TRANSCRIPT
# =============================================================================

@dataclass
class ChatTranscript:
    """
    Messages shown on the chat screen.
    
    A sent message is shown at once under a ``temp-`` id; it is either
    replaced by the stored transcript or rolled back on failure.
    """
    session_id: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    
    def add_optimistic(self, content: str, role: MessageRole = MessageRole.USER) -> ChatMessage:
        temp = ChatMessage(
            id=f"temp-{role.value}-{time.time_ns()}",
            session_id=self.session_id,
            role=role,
            content=content,
        )
        self.messages.append(temp)
        return temp
    
    def rollback(self, temp_id: str) -> None:
        self.messages = [m for m in self.messages if m.id != temp_id]
    
    def replace(self, messages: list[ChatMessage]) -> None:
        self.messages = sorted(messages, key=lambda m: m.created_at)
    
    def has_pending(self) -> bool:
        return any(m.id.startswith("temp-") for m in self.messages)


def sync_transcript(client: LogFluentClient, transcript: ChatTranscript) -> bool:
    """
    Replace the transcript with the stored messages.

    Returns False, keeping the local copy, when the API cannot be read.
    """
    try:
        transcript.replace(client.list_messages(transcript.session_id))
    except (ApiError, httpx.HTTPError) as e:
        logger.warning(
            f"Error refreshing messages: {e}",
            extra={"session_id": transcript.session_id}
        )
        return False
    return True


def submit_question(
    client: LogFluentClient,
    transcript: ChatTranscript,
    question: str,
    log_id: str
) -> bool:
    """
    Send a question and refresh the transcript.

    A failed send rolls the question back and re-raises. Once the answer
    is in, both sides stay shown even if the refresh fails; they are
    marked pending and the next ``sync_transcript`` swaps in the stored
    copies. Returns whether the refresh succeeded.
    """
    temp = transcript.add_optimistic(question)
    try:
        answer = client.send_message(transcript.session_id, question, log_id)
    except (ApiError, httpx.HTTPError):
        transcript.rollback(temp.id)
        raise

    transcript.add_optimistic(answer, MessageRole.ASSISTANT)
    return sync_transcript(client, transcript)
