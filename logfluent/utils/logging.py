"""
LogFluent Insight - Structured Logging
======================================

JSON logging for the API and dashboard. Each record carries the request's
correlation ID and, inside a summarize or chat request, the log and chat
session it concerns.

Usage:
    from logfluent.utils.logging import bind_log_context, get_logger, setup_logging
    
    setup_logging(service_name="logfluent", log_level="INFO")
    logger = get_logger(__name__)
    
    with bind_log_context(log_id=log_id):
        logger.info("Summary stored")
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Iterator, Optional
from contextlib import contextmanager
from contextvars import ContextVar

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Log and chat session the current request is working on
log_context_var: ContextVar[Optional[dict[str, str]]] = ContextVar("log_context", default=None)

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})


class StructuredFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.
    
    Every entry carries timestamp, level, service, logger and message;
    correlation_id, exception text and any ``extra`` fields are added
    when present.
    """
    
    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name
    
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        correlation_id = correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value
        
        return json.dumps(entry, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps request context onto each record.

    Adds the correlation ID and any ``log_id``/``session_id`` bound with
    ``bind_log_context``. Explicit ``extra`` values win.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.get("extra") or {})

        if "correlation_id" not in extra:
            correlation_id = correlation_id_var.get()
            if correlation_id:
                extra["correlation_id"] = correlation_id

        for key, value in (log_context_var.get() or {}).items():
            extra.setdefault(key, value)

        kwargs["extra"] = extra
        return msg, kwargs


@contextmanager
def bind_log_context(
    log_id: Optional[str] = None,
    session_id: Optional[str] = None
) -> Iterator[None]:
    """
    Tag every record logged inside the block with the log and session.

    Covers records from the store and the LLM client as well, so one
    ``log_id`` query finds a whole summarize or chat request. Blocks nest;
    inner values override outer ones until the inner block exits.

    Example:
        with bind_log_context(log_id=request.log_id):
            summary = await summarizer.summarize(request.log_id, content)
    """
    fields = dict(log_context_var.get() or {})
    if log_id:
        fields["log_id"] = log_id
    if session_id:
        fields["session_id"] = session_id

    token = log_context_var.set(fields)
    try:
        yield
    finally:
        log_context_var.reset(token)


_loggers: dict[str, ContextualLogger] = {}


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """
    Configure root logging for a process.
    
    Called once at startup by the API and by the dashboard.
    
    Args:
        service_name: Name stamped on every record (e.g., "logfluent")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON lines; otherwise a readable format
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    
    handler = logging.StreamHandler(sys.stdout)
    
    if json_output:
        handler.setFormatter(StructuredFormatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(
            f"%(asctime)s | {service_name} | %(levelname)s | %(name)s | %(message)s"
        ))
    
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))
    
    # Outgoing calls to the store and Gemini are otherwise logged per request
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> ContextualLogger:
    """
    Get a contextual logger for the given module.
    
    Args:
        name: Logger name, typically __name__
    """
    if name not in _loggers:
        _loggers[name] = ContextualLogger(logging.getLogger(name), {})
    return _loggers[name]


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID for the current request context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None outside a request."""
    return correlation_id_var.get()
