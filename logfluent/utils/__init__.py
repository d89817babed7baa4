"""
LogFluent Insight - Utilities
=============================

Structured logging and the outgoing HTTP client.
"""

from logfluent.utils.logging import (
    bind_log_context,
    get_logger,
    setup_logging,
    set_correlation_id,
)
from logfluent.utils.http_client import ServiceClient, ServiceClientConfig

__all__ = [
    "bind_log_context",
    "get_logger",
    "setup_logging",
    "set_correlation_id",
    "ServiceClient",
    "ServiceClientConfig",
]
