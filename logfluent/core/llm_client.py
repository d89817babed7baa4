"""
LogFluent Insight - LLM Client
==============================

Single text-generation call used by the summarizer and the chat handler.
Supports two providers: Mock (offline, deterministic) and Gemini.
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Optional
import re

import httpx

from logfluent.config import get_settings, LLMProvider
from logfluent.core.errors import LLMError
from logfluent.utils.http_client import ServiceClient, ServiceClientConfig
from logfluent.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_client_instance: Optional["BaseLLMClient"] = None


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters sent with every generation request."""
    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int

    def to_payload(self) -> dict:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


SUMMARY_GENERATION = GenerationConfig(
    temperature=0.3, top_k=40, top_p=0.95, max_output_tokens=2048
)
CHAT_GENERATION = GenerationConfig(
    temperature=0.7, top_k=40, top_p=0.95, max_output_tokens=1024
)


class BaseLLMClient(ABC):
    """Base class for LLM clients."""

    provider: str = ""

    async def initialize(self) -> None:
        """Prepare connections."""

    async def shutdown(self) -> None:
        """Release connections."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the client can serve requests."""

    @abstractmethod
    async def generate(self, prompt: str, config: GenerationConfig) -> str:
        """
        Generate text for a prompt.

        Raises:
            LLMError: the provider failed or returned no text
        """


class MockLLMClient(BaseLLMClient):
    """
    Offline LLM stand-in for development and testing.

    Summaries are built by scanning the log for known error signatures;
    chat answers quote the question back with the stored summary context.
    """

    provider = "mock"

    # Error signatures: pattern -> (label, recommended action)
    ERROR_PATTERNS = {
        r"(?i)null\s*pointer|NullPointerException|NoneType|null\s*reference": (
            "Null reference",
            "Add null checks on the code path that dereferences the missing object"
        ),
        r"(?i)out\s*of\s*memory|OOM|heap\s*space|memory\s*limit": (
            "Out of memory",
            "Review recent changes for memory leaks and check memory limits"
        ),
        r"(?i)connection\s*refused|ECONNREFUSED|host\s*unreachable|connection\s*reset": (
            "Connection failure",
            "Verify the downstream service is running and reachable"
        ),
        r"(?i)timeout|timed?\s*out|deadline\s*exceeded": (
            "Timeout",
            "Find the slow dependency and reconsider timeout thresholds"
        ),
        r"(?i)auth(entication)?\s*(failed|error)|invalid\s*credentials|\b401\b|unauthorized": (
            "Authentication",
            "Check that credentials and tokens are valid and not expired"
        ),
        r"(?i)forbidden|\b403\b|access\s*denied|permission\s*denied": (
            "Authorization",
            "Review role and permission assignments"
        ),
        r"(?i)database|SQL|postgres|mysql|deadlock|connection\s*pool": (
            "Database",
            "Check database connectivity, pool settings and slow queries"
        ),
        r"(?i)rate\s*limit|too\s*many\s*requests|\b429\b|throttl": (
            "Rate limiting",
            "Add backoff or caching to reduce request volume"
        ),
    }

    LEVEL_PATTERNS = {
        "error": re.compile(r"(?i)\b(error|fatal|critical|severe|exception)\b"),
        "warning": re.compile(r"(?i)\b(warn|warning)\b"),
    }

    LATENCY_PATTERN = re.compile(r"(?i)(\d+(?:\.\d+)?)\s*(ms|milliseconds)\b")

    def __init__(self):
        self._ready = False

    async def initialize(self) -> None:
        logger.info("Initializing Mock LLM client")
        self._ready = True

    async def shutdown(self) -> None:
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    def _classify(self, line: str) -> Optional[tuple[str, str]]:
        for pattern, (label, action) in self.ERROR_PATTERNS.items():
            if re.search(pattern, line):
                return label, action
        return None

    def summarize_content(self, content: str) -> str:
        """Build a five-part digest of a log without calling any model."""
        lines = [line for line in content.splitlines() if line.strip()]
        errors = [line for line in lines if self.LEVEL_PATTERNS["error"].search(line)]
        warnings = [line for line in lines if self.LEVEL_PATTERNS["warning"].search(line)]

        categories: Counter = Counter()
        actions: dict[str, str] = {}
        for line in errors + warnings:
            match = self._classify(line)
            if match:
                label, action = match
                categories[label] += 1
                actions[label] = action

        latencies = [float(m.group(1)) for m in self.LATENCY_PATTERN.finditer(content)]

        parts = [
            "## 1. Overall summary",
            f"The log contains {len(lines)} non-empty lines with "
            f"{len(errors)} error and {len(warnings)} warning entries. "
            + (f"The most frequent issue is {categories.most_common(1)[0][0].lower()}."
               if categories else "No known failure signature was detected."),
            "",
            "## 2. Key events or errors",
        ]
        if errors:
            parts.extend(f"- {line.strip()[:200]}" for line in errors[:5])
        else:
            parts.append("- No error entries found")

        parts.extend(["", "## 3. Critical issues"])
        if categories:
            parts.extend(f"- {label}: {count} occurrence(s)" for label, count in categories.most_common())
        else:
            parts.append("- None identified")

        parts.extend(["", "## 4. Performance insights"])
        if latencies:
            parts.append(
                f"- {len(latencies)} latency measurements, max {max(latencies):.0f} ms, "
                f"mean {sum(latencies) / len(latencies):.0f} ms"
            )
        else:
            parts.append("- No timing data found")

        parts.extend(["", "## 5. Recommendations"])
        if actions:
            parts.extend(f"- {actions[label]}" for label, _ in categories.most_common())
        else:
            parts.append("- No action required")

        return "\n".join(parts)

    async def generate(self, prompt: str, config: GenerationConfig) -> str:
        if "Current user question:" in prompt:
            question = prompt.split("Current user question:", 1)[1].split("\n", 1)[0].strip()
            return (
                f"You asked: \"{question}\". Based on the log summary above, "
                "start with the entries listed under critical issues. "
                "Share the relevant log lines if you need a closer look."
            )

        content = prompt.split("Log content:\n", 1)[-1]
        return self.summarize_content(content)


class GeminiLLMClient(BaseLLMClient):
    """
    Client for the Gemini ``generateContent`` REST endpoint.

    Sends the prompt as a single text part and returns the text of the
    first candidate.
    """

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.0-flash",
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.model_name = model_name
        self._client = ServiceClient(
            api_url,
            ServiceClientConfig(timeout_seconds=timeout_seconds),
            transport=transport
        )

    async def initialize(self) -> None:
        logger.info(f"Initializing Gemini LLM client with model: {self.model_name}")
        if not self.api_key:
            logger.warning("GEMINI_API_KEY is not set; generation requests will fail")

    async def shutdown(self) -> None:
        await self._client.close()

    def is_ready(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str, config: GenerationConfig) -> str:
        if not self.api_key:
            raise LLMError("Gemini API key not configured")

        response = await self._client.post(
            f"/models/{self.model_name}:generateContent",
            data={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": config.to_payload(),
            },
            params={"key": self.api_key}
        )

        if response.status_code >= 400:
            raise LLMError(f"Gemini API error: {response.text}")

        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("Gemini API returned no text") from e


def get_llm_client() -> BaseLLMClient:
    """
    Get the singleton LLM client.

    Returns the provider selected by ``LLM_PROVIDER``.
    """
    global _client_instance

    if _client_instance is None:
        if settings.llm_provider == LLMProvider.GEMINI:
            _client_instance = GeminiLLMClient(
                api_key=settings.gemini_api_key,
                model_name=settings.gemini_model,
                api_url=settings.gemini_api_url,
                timeout_seconds=settings.llm_timeout_seconds
            )
        else:
            _client_instance = MockLLMClient()

    return _client_instance
