"""
Shared logging configuration for the payment signing key cache.
"""

import sys
import structlog
import logging
import uuid
from typing import Any, Dict, Optional, TextIO
from contextvars import ContextVar

# Correlation id for the refresh attempt a log event belongs to
refresh_id_var: ContextVar[Optional[str]] = ContextVar('refresh_id', default=None)


def configure_logging(service_name: str, log_level: str = "info", stream: Optional[TextIO] = None) -> None:
    """Configure structured logging for a service."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_refresh_context,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    # Extract service name from logger name
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".")[0]

    return event_dict


def add_refresh_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the current refresh attempt id to log events."""
    refresh_id = refresh_id_var.get()
    if refresh_id:
        event_dict["refresh_id"] = refresh_id

    return event_dict


def set_refresh_id(refresh_id: Optional[str] = None) -> str:
    """Set refresh attempt ID in context."""
    if refresh_id is None:
        refresh_id = uuid.uuid4().hex[:12]
    refresh_id_var.set(refresh_id)
    return refresh_id


def clear_context():
    """Clear all context variables."""
    refresh_id_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
