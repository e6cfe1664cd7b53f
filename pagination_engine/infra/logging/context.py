"""Context management for structured logging.

Context fields (request id, endpoint, strategy) set with ``set_log_context``
are injected into every record emitted by the current task through
``ContextInjectingFilter``. Backed by contextvars, so concurrent pagination
requests never see each other's context.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(request_id="abc-123", endpoint="/items")
        logger.info("Serving page")  # record carries request_id and endpoint
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Remove every field from the current logging context."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the current context onto each LogRecord.

    Attached to the root logger by ``configure_logging``; existing record
    attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
