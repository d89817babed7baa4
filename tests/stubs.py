"""
Test doubles for the LLM client and the store.
"""

from logfluent.api.schemas import LogStatus
from logfluent.core.errors import LLMError
from logfluent.core.llm_client import BaseLLMClient, GenerationConfig
from logfluent.core.log_store import InMemoryLogStore


class RecordingLLM(BaseLLMClient):
    """LLM stub that records prompts and returns a fixed reply."""

    provider = "recording"

    def __init__(self, reply: str = "stub reply"):
        self.reply = reply
        self.calls: list[tuple[str, GenerationConfig]] = []

    def is_ready(self) -> bool:
        return True

    async def generate(self, prompt: str, config: GenerationConfig) -> str:
        self.calls.append((prompt, config))
        return self.reply


class FailingLLM(BaseLLMClient):
    """LLM stub whose every call fails."""

    provider = "failing"

    def is_ready(self) -> bool:
        return True

    async def generate(self, prompt: str, config: GenerationConfig) -> str:
        raise LLMError("Gemini API error: quota exceeded")


class StatusRecordingStore(InMemoryLogStore):
    """In-memory store that remembers every status a log moves through."""

    def __init__(self):
        super().__init__()
        self.status_history: dict[str, list[LogStatus]] = {}

    async def create_log(self, filename, content, file_path=None):
        log = await super().create_log(filename, content, file_path)
        self.status_history[log.id] = [log.status]
        return log

    async def update_log(self, log_id, status=None, summary=None, original_content=None):
        log = await super().update_log(log_id, status, summary, original_content)
        if status is not None:
            self.status_history[log_id].append(log.status)
        return log
