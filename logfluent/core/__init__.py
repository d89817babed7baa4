"""
LogFluent Insight - Core Package
"""

from logfluent.core.log_store import get_log_store, BaseLogStore, InMemoryLogStore, SupabaseLogStore
from logfluent.core.llm_client import get_llm_client, BaseLLMClient, MockLLMClient, GeminiLLMClient
from logfluent.core.summarizer import LogSummarizer
from logfluent.core.chat_handler import ChatHandler

__all__ = [
    "get_log_store",
    "BaseLogStore",
    "InMemoryLogStore",
    "SupabaseLogStore",
    "get_llm_client",
    "BaseLLMClient",
    "MockLLMClient",
    "GeminiLLMClient",
    "LogSummarizer",
    "ChatHandler",
]
