"""Offset (skip/limit) pagination.

``skip = (page - 1) * limit``. The storage engine still walks every skipped
row, so depth is capped by ``max_skip_depth``; callers paging beyond it are
expected to switch to keyset pagination.

Offset pages are positions relative to the start of the collection. When
rows are inserted or deleted between two requests the same page number can
repeat rows already seen or skip rows never seen. That is inherent to the
strategy and not guarded against.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pagination_engine.core.exceptions import InvalidPageError, MaxOffsetExceededError
from pagination_engine.infra.logging import get_lazy_logger
from pagination_engine.storage.base import OffsetQuery, Window

if TYPE_CHECKING:
    from pagination_engine.core.pagination.sorting import SortSpec
    from pagination_engine.storage.base import RowSource

_lazy = get_lazy_logger(__name__)


class OffsetPager:
    """Skip/limit pager over a ``RowSource`` with a skip-depth cap."""

    __slots__ = ("max_skip_depth", "source")

    def __init__(self, source: RowSource, *, max_skip_depth: int = 10_000) -> None:
        """Initialize offset pager.

        Args:
            source: Storage collaborator executing the queries.
            max_skip_depth: Largest number of rows a query may skip.
        """
        if max_skip_depth < 0:
            raise ValueError("max_skip_depth must not be negative")
        self.source = source
        self.max_skip_depth = max_skip_depth

    def plan(
        self,
        sort: SortSpec,
        page: int,
        limit: int,
        filters: Mapping[str, Any] | None = None,
    ) -> OffsetQuery:
        """Validate inputs and build the N+1 skip query without executing it.

        Raises:
            InvalidPageError: If ``page`` is below 1.
            MaxOffsetExceededError: If the computed skip exceeds ``max_skip_depth``.
            ValueError: If ``limit`` is not positive.
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        if page < 1:
            raise InvalidPageError(f"page must be >= 1, got {page}", extra={"page": page})

        skip = (page - 1) * limit
        if skip > self.max_skip_depth:
            raise MaxOffsetExceededError(skip, self.max_skip_depth)

        return OffsetQuery(sort=sort, skip=skip, fetch=limit + 1, filters=dict(filters or {}))

    async def execute(self, query: OffsetQuery) -> Window:
        """Run a planned query and trim the look-ahead row."""
        rows = await self.source.fetch_offset(query)
        window = Window.from_fetched(rows, query.fetch - 1)
        _lazy.debug(
            lambda: f"offset.fetch: sort={query.sort.to_expression()} skip={query.skip} "
            f"limit={query.fetch - 1} -> {len(window.rows)} rows, has_more={window.has_more}"
        )
        return window

    async def fetch(
        self,
        sort: SortSpec,
        page: int,
        limit: int,
        filters: Mapping[str, Any] | None = None,
    ) -> Window:
        """Fetch page number ``page`` (1-based)."""
        return await self.execute(self.plan(sort, page, limit, filters))


__all__ = ["OffsetPager"]
