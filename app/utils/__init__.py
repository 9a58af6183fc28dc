"""
Utility modules for the cursorignore checker.
"""

from app.utils.logging import (
    get_logger,
    setup_logging,
    ContextLoggerAdapter,
    JSONFormatter,
    log_pr_event,
    log_api_call,
    log_error_with_context,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "log_pr_event",
    "log_api_call",
    "log_error_with_context",
]
