"""FastAPI dependencies."""

from pagination_engine.core.dependencies.pagination import (
    KeysetPageRequest,
    OffsetPageRequest,
    get_keyset_page_request,
    get_offset_page_request,
    page_request_dependency,
)

__all__ = [
    "KeysetPageRequest",
    "OffsetPageRequest",
    "get_keyset_page_request",
    "get_offset_page_request",
    "page_request_dependency",
]
