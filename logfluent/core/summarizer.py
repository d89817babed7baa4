"""
LogFluent Insight - Log Summarizer
==================================

Turns an uploaded log into an LLM-written summary and records the
outcome on the log: processing while waiting, then completed or error.
"""

from logfluent.api.schemas import LogStatus
from logfluent.config import get_settings
from logfluent.core.llm_client import BaseLLMClient, SUMMARY_GENERATION
from logfluent.core.log_store import BaseLogStore
from logfluent.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

SUMMARY_PROMPT = """Please analyze and summarize this log file. Provide:
1. Overall summary (2-3 sentences)
2. Key events or errors identified
3. Critical issues that need attention
4. Performance insights if applicable
5. Recommendations for action

Log content:
{content}"""


def build_summary_prompt(content: str, max_chars: int) -> str:
    """Prompt for a log, keeping only the first ``max_chars`` characters."""
    return SUMMARY_PROMPT.format(content=content[:max_chars])


class LogSummarizer:
    """Runs one summarization request against the store and the LLM."""
    
    def __init__(
        self,
        store: BaseLogStore,
        llm: BaseLLMClient,
        max_chars: int = settings.summary_max_chars
    ):
        self.store = store
        self.llm = llm
        self.max_chars = max_chars
    
    async def summarize(self, log_id: str, content: str) -> str:
        """
        Summarize ``content`` and store the result on log ``log_id``.
        
        On failure the log is marked ``error`` (best effort) and the
        original exception propagates.
        
        Returns:
            The generated summary
        """
        if not log_id or not content:
            raise ValueError("Log ID and content are required")
        
        logger.info(
            f"Processing log summarization for log ID: {log_id}",
            extra={"log_id": log_id, "content_chars": len(content)}
        )
        
        try:
            await self.store.update_log(log_id, status=LogStatus.PROCESSING)
            
            prompt = build_summary_prompt(content, self.max_chars)
            summary = await self.llm.generate(prompt, SUMMARY_GENERATION)
            
            logger.info(f"Generated summary for log: {log_id}", extra={"log_id": log_id})
            
            await self.store.update_log(
                log_id,
                status=LogStatus.COMPLETED,
                summary=summary,
                original_content=content
            )
        except Exception as e:
            logger.error(
                f"Summarization failed for log {log_id}: {e}",
                extra={"log_id": log_id},
                exc_info=True
            )
            await self._mark_error(log_id)
            raise
        
        return summary
    
    async def _mark_error(self, log_id: str) -> None:
        try:
            await self.store.update_log(log_id, status=LogStatus.ERROR)
        except Exception as e:
            logger.error(
                f"Failed to update log status to error: {e}",
                extra={"log_id": log_id}
            )
