"""
LogFluent Insight - API Routes
==============================

FastAPI endpoints for log upload, summarization and chat.
"""

from fastapi import APIRouter, Depends, HTTPException

from logfluent.config import get_settings
from logfluent.api.schemas import (
    Log,
    ChatSession,
    ChatMessage,
    LogCreateRequest,
    SummarizeRequest,
    SummarizeResponse,
    ChatRequest,
    ChatResponse,
)
from logfluent.core.errors import LogNotFoundError, SessionNotFoundError
from logfluent.core.log_store import BaseLogStore, get_log_store, make_file_path
from logfluent.core.llm_client import BaseLLMClient, get_llm_client
from logfluent.core.summarizer import LogSummarizer
from logfluent.core.chat_handler import ChatHandler
from logfluent.utils.logging import bind_log_context, get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["logfluent"])


# =============================================================================
# LOG ENDPOINTS
# =============================================================================

@router.post("/logs", response_model=Log, status_code=201)
async def create_log(
    request: LogCreateRequest,
    store: BaseLogStore = Depends(get_log_store)
):
    """
    Store an uploaded log with status ``uploaded``.
    
    The raw file is also copied to the storage bucket; a failed copy is
    logged and ignored since the content is kept on the record.
    """
    file_path = make_file_path(request.filename)
    log = await store.create_log(request.filename, request.content, file_path)
    
    try:
        await store.upload_file(file_path, request.content.encode("utf-8"))
    except Exception as e:
        logger.warning(
            f"Storage upload failed: {e}",
            extra={"log_id": log.id, "file_path": file_path}
        )
    
    return log


@router.get("/logs/{log_id}", response_model=Log)
async def get_log(log_id: str, store: BaseLogStore = Depends(get_log_store)):
    """Fetch a log and its current analysis status."""
    try:
        return await store.get_log(log_id)
    except LogNotFoundError:
        raise HTTPException(status_code=404, detail="Log not found")


@router.post("/logs/{log_id}/sessions", response_model=ChatSession, status_code=201)
async def create_chat_session(log_id: str, store: BaseLogStore = Depends(get_log_store)):
    """Open a new chat session about a log."""
    try:
        log = await store.get_log(log_id)
    except LogNotFoundError:
        raise HTTPException(status_code=404, detail="Log not found")
    
    return await store.create_session(log.id, title=f"Chat about {log.filename}")


@router.get("/sessions/{session_id}/messages", response_model=list[ChatMessage])
async def list_chat_messages(session_id: str, store: BaseLogStore = Depends(get_log_store)):
    """All messages of a session, oldest first."""
    try:
        return await store.list_messages(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Chat session not found")


# =============================================================================
# ANALYSIS ENDPOINTS
# =============================================================================

@router.post("/summarize-log", response_model=SummarizeResponse)
async def summarize_log(
    request: SummarizeRequest,
    store: BaseLogStore = Depends(get_log_store),
    llm: BaseLLMClient = Depends(get_llm_client)
):
    """
    Summarize a log with the LLM.
    
    The log moves to ``processing`` and then ``completed``, or to
    ``error`` if anything fails.
    """
    summarizer = LogSummarizer(store, llm)
    
    with bind_log_context(log_id=request.log_id):
        try:
            summary = await summarizer.summarize(request.log_id, request.content)
        except Exception as e:
            logger.error(f"Error in summarize-log: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
    
    return SummarizeResponse(success=True, summary=summary, log_id=request.log_id)


@router.post("/chat-log", response_model=ChatResponse)
async def chat_log(
    request: ChatRequest,
    store: BaseLogStore = Depends(get_log_store),
    llm: BaseLLMClient = Depends(get_llm_client)
):
    """Answer a question about a log within a chat session."""
    handler = ChatHandler(store, llm)
    
    with bind_log_context(log_id=request.log_id, session_id=request.session_id):
        try:
            answer = await handler.respond(request.session_id, request.message, request.log_id)
        except Exception as e:
            logger.error(f"Error in chat-log: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
    
    return ChatResponse(success=True, response=answer)


# =============================================================================
# CONFIGURATION
# =============================================================================

@router.get("/config")
async def get_configuration():
    """Get current service configuration (without secrets)."""
    return {
        "store_provider": settings.store_provider.value,
        "llm_provider": settings.llm_provider.value,
        "gemini_model": settings.gemini_model,
        "summary_max_chars": settings.summary_max_chars,
        "chat_history_limit": settings.chat_history_limit,
    }
