"""Pagination request and response schemas.

``PageRequest`` is what a request-handling collaborator builds from client
input; ``PageResult`` is what the engine returns. Both strategies share the
same models:

- keyset: ``cursor`` in, ``next_cursor`` out (present only when ``has_more``)
- offset: ``page`` in, ``next_page``/``previous_page`` out
"""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from pagination_engine.core.pagination.sorting import SortSpec

T = TypeVar("T")

Strategy = Literal["offset", "keyset"]


class PageRequest(BaseModel):
    """One pagination request.

    Attributes:
        strategy: ``"keyset"`` or ``"offset"``.
        limit: Page size; None uses the configured default.
        sort: Sort order (tiebreaker included). Strings are parsed with
            ``SortSpec.parse``.
        page: 1-based page number (offset strategy only).
        cursor: Token from a previous ``next_cursor`` (keyset strategy only,
            absent for the first page).
        filters: Equality filters scoping the collection; also the context
            key for total counts.
        include_total: Whether to ask the count estimator for a total.

    Example:
        PageRequest(strategy="keyset", limit=20, sort="-created_at")
        PageRequest(strategy="offset", limit=20, sort="title", page=3)
    """

    strategy: Strategy = Field(default="keyset", description="Pagination strategy")
    limit: int | None = Field(default=None, description="Page size (None: default)")
    sort: InstanceOf[SortSpec] = Field(
        default_factory=lambda: SortSpec.build([]),
        description="Sort order",
    )
    page: int | None = Field(default=None, description="Page number (offset)")
    cursor: str | None = Field(default=None, description="Continuation token (keyset)")
    filters: dict[str, Any] = Field(default_factory=dict, description="Equality filters")
    include_total: bool = Field(default=False, description="Request a total count")

    model_config = ConfigDict(frozen=True)

    @field_validator("sort", mode="before")
    @classmethod
    def parse_sort_expression(cls, value: Any) -> Any:
        """Accept ``"-created_at,id"`` style expressions."""
        if isinstance(value, str):
            return SortSpec.parse(value)
        return value

    @field_validator("cursor", mode="before")
    @classmethod
    def blank_cursor_is_first_page(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PageResult(BaseModel, Generic[T]):
    """One page of results.

    Attributes:
        items: Rows of this page, in sort order (at most ``limit``).
        has_more: Whether rows exist beyond this page.
        strategy: Strategy that produced the page.
        limit: Effective page size.
        next_cursor: Token for the next page (keyset; None on the last page).
        page: Page number served (offset).
        next_page: Following page number (offset; None on the last page).
        previous_page: Preceding page number (offset; None on page 1).
        total_count: Total rows, when a count estimator supplied one.
    """

    items: list[T] = Field(default_factory=list, description="Page items")
    has_more: bool = Field(default=False, description="Whether more items exist")
    strategy: Strategy = Field(description="Strategy used")
    limit: int = Field(ge=1, description="Effective page size")
    next_cursor: str | None = Field(default=None, description="Cursor for the next page")
    page: int | None = Field(default=None, description="Current page number")
    next_page: int | None = Field(default=None, description="Next page number")
    previous_page: int | None = Field(default=None, description="Previous page number")
    total_count: int | None = Field(default=None, description="Total count (optional)")

    model_config = ConfigDict(arbitrary_types_allowed=True)


__all__ = ["PageRequest", "PageResult", "Strategy"]
