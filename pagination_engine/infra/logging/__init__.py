"""Logging infrastructure.

Basic usage:
    import logging

    from pagination_engine.infra.logging import get_lazy_logger, set_log_context

    logger = logging.getLogger(__name__)
    set_log_context(request_id="abc-123")
    logger.info("Serving page")  # includes request_id

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Expensive: {compute()}")  # only runs if DEBUG enabled
"""

from pagination_engine.infra.logging.config import configure_logging, setup_logging
from pagination_engine.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from pagination_engine.infra.logging.formatters import JSONFormatter
from pagination_engine.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "set_log_context",
    "setup_logging",
]
