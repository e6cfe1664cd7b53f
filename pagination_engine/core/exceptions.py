"""Custom exception classes for the pagination engine.

Every error the engine raises derives from ``PaginationError`` which itself
follows the RFC 7807 Problem Details shape of ``AppException`` so that a
request-handling collaborator can render it without knowing the taxonomy.

Validation errors (limit, page, cursor, depth) are raised before any storage
call is issued. Upstream and timeout errors carry the original cause on
``__cause__`` and are never retried internally.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class AppException(Exception):
    """Base application exception.

    Follows RFC 7807 Problem Details for HTTP APIs.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for HTTP status code."""
        titles = {
            400: "Bad Request",
            404: "Not Found",
            409: "Conflict",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
            502: "Bad Gateway",
            504: "Gateway Timeout",
        }
        return titles.get(status_code, "Error")

    def __str__(self) -> str:
        """Format error message with extra context."""
        if self.extra:
            extra_str = ", ".join(f"{k}={v!r}" for k, v in self.extra.items())
            return f"{self.detail} ({extra_str})"
        return self.detail


class PaginationError(AppException):
    """Base class for every error raised while serving a page.

    Subclasses fix ``status_code``, ``type`` and ``title`` so call sites only
    supply the detail message and context.
    """

    status_code: int = 400
    type: str = "pagination-error"
    title: str = "Pagination Error"

    def __init__(self, detail: str, extra: dict[str, Any] | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail,
            type=type(self).type,
            title=type(self).title,
            extra=extra,
        )


class InvalidLimitError(PaginationError):
    """Requested page size is outside ``[1, max_limit]``."""

    status_code = 422
    type = "invalid-limit"
    title = "Invalid Limit"

    def __init__(self, limit: int, max_limit: int) -> None:
        self.limit = limit
        self.max_limit = max_limit
        super().__init__(
            f"limit must be between 1 and {max_limit}, got {limit}",
            extra={"limit": limit, "max_limit": max_limit},
        )


class InvalidPageError(PaginationError):
    """Page number is below 1 or supplied for the wrong strategy."""

    status_code = 422
    type = "invalid-page"
    title = "Invalid Page"


class InvalidCursorError(PaginationError):
    """Cursor token is truncated, corrupt, forged or otherwise undecodable.

    The ``reason`` is kept for logs; the client-facing detail stays generic so
    the token layout is never described to callers.
    """

    type = "invalid-cursor"
    title = "Invalid Cursor"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Invalid pagination cursor")

    def __str__(self) -> str:
        return f"Invalid pagination cursor: {self.reason}"


class CursorSortMismatchError(PaginationError):
    """Cursor was minted under a different sort order than the current request."""

    status_code = 409
    type = "cursor-sort-mismatch"
    title = "Cursor Sort Mismatch"

    def __init__(self, cursor_signature: bytes, current_signature: bytes) -> None:
        self.cursor_signature = cursor_signature
        self.current_signature = current_signature
        super().__init__(
            "Cursor does not match the requested sort order; restart from the first page",
            extra={
                "cursor_signature": cursor_signature.hex(),
                "current_signature": current_signature.hex(),
            },
        )


class MaxOffsetExceededError(PaginationError):
    """Computed skip exceeds the configured ``max_skip_depth``."""

    status_code = 422
    type = "max-offset-exceeded"
    title = "Maximum Offset Exceeded"

    def __init__(self, skip: int, max_skip_depth: int) -> None:
        self.skip = skip
        self.max_skip_depth = max_skip_depth
        super().__init__(
            f"Offset {skip} exceeds the maximum skip depth of {max_skip_depth}; "
            "use keyset pagination for deep result sets",
            extra={"skip": skip, "max_skip_depth": max_skip_depth},
        )


class UnknownFieldError(PaginationError):
    """Sort or filter names a field the row source cannot order or filter by."""

    status_code = 422
    type = "unknown-field"
    title = "Unknown Field"

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = sorted(set(fields))
        super().__init__(
            f"Unknown sort or filter field(s): {', '.join(self.fields)}",
            extra={"fields": self.fields},
        )


class CursorEncodingError(PaginationError):
    """The last row of a page holds a sort value no cursor can carry.

    The original exception is chained as ``__cause__``.
    """

    status_code = 500
    type = "cursor-encoding-failed"
    title = "Cursor Encoding Failed"

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            f"Cannot build the next cursor: {cause}",
            extra={"cause": type(cause).__name__},
        )


class UpstreamQueryFailedError(PaginationError):
    """The storage collaborator raised while executing the page query.

    The original exception is chained as ``__cause__``.
    """

    status_code = 502
    type = "upstream-query-failed"
    title = "Upstream Query Failed"

    def __init__(self, strategy: str, cause: BaseException) -> None:
        self.strategy = strategy
        self.cause = cause
        super().__init__(
            f"{strategy} page query failed: {type(cause).__name__}",
            extra={"strategy": strategy, "cause": type(cause).__name__},
        )


class PaginationTimeoutError(PaginationError):
    """The caller-supplied deadline expired while the page query was running."""

    status_code = 504
    type = "pagination-timeout"
    title = "Pagination Timeout"

    def __init__(self, strategy: str, timeout: float) -> None:
        self.strategy = strategy
        self.timeout = timeout
        super().__init__(
            f"{strategy} page query exceeded deadline of {timeout}s",
            extra={"strategy": strategy, "timeout": timeout},
        )


__all__ = [
    "AppException",
    "CursorEncodingError",
    "CursorSortMismatchError",
    "InvalidCursorError",
    "InvalidLimitError",
    "InvalidPageError",
    "MaxOffsetExceededError",
    "PaginationError",
    "PaginationTimeoutError",
    "UnknownFieldError",
    "UpstreamQueryFailedError",
]
