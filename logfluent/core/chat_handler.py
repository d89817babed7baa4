"""
LogFluent Insight - Chat Handler
================================

Answers follow-up questions about an analyzed log. Each question is
stored, sent to the LLM together with the log summary and recent
conversation, and the reply is stored alongside it.
"""

from logfluent.api.schemas import ChatMessage, Log, MessageRole
from logfluent.config import get_settings
from logfluent.core.llm_client import BaseLLMClient, CHAT_GENERATION
from logfluent.core.log_store import BaseLogStore
from logfluent.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def build_chat_prompt(log: Log, history: list[ChatMessage], question: str) -> str:
    """Assemble the LLM prompt for one chat turn."""
    prompt = (
        "You are an AI assistant helping analyze a log file. Here's the context:\n"
        "\n"
        f"Log filename: {log.filename}\n"
        f"Log summary: {log.summary or 'No summary available yet'}\n"
        "\n"
    )
    
    if history:
        prompt += "Previous conversation:\n"
        for message in history:
            prompt += f"{message.role.value}: {message.content}\n"
    
    prompt += (
        "\n"
        f"Current user question: {question}\n"
        "\n"
        "Please provide a helpful response based on the log analysis. "
        "If you need to reference specific parts of the log, you can ask "
        "the user to provide more details."
    )
    return prompt


class ChatHandler:
    """Runs one chat turn against the store and the LLM."""
    
    def __init__(
        self,
        store: BaseLogStore,
        llm: BaseLLMClient,
        history_limit: int = settings.chat_history_limit
    ):
        self.store = store
        self.llm = llm
        self.history_limit = history_limit
    
    async def respond(self, session_id: str, message: str, log_id: str) -> str:
        """
        Store ``message``, ask the LLM, store and return its answer.
        
        Any failure aborts the turn; writes already made are kept.
        """
        if not session_id or not message or not log_id:
            raise ValueError("Session ID, message, and log ID are required")
        
        logger.info(
            f"Processing chat for session: {session_id}",
            extra={"session_id": session_id, "log_id": log_id}
        )
        
        log = await self.store.get_log(log_id)
        
        # History is read before the new question is stored so it is not repeated
        history = await self.store.recent_messages(session_id, self.history_limit)
        
        await self.store.add_message(session_id, MessageRole.USER, message)
        
        prompt = build_chat_prompt(log, history, message)
        answer = await self.llm.generate(prompt, CHAT_GENERATION)
        
        logger.info(
            f"Generated response for session: {session_id}",
            extra={"session_id": session_id, "history_messages": len(history)}
        )
        
        await self.store.add_message(session_id, MessageRole.ASSISTANT, answer)
        
        return answer
