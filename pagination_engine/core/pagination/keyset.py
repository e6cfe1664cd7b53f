"""Keyset (seek) pagination.

Instead of skipping rows, each page seeks to the rows that sort strictly
after the last row already served. For ``ORDER BY a ASC, b DESC, id ASC``
and a cursor at ``(va, vb, vid)`` the seek predicate is:

    a > va
    OR (a = va AND b < vb)
    OR (a = va AND b = vb AND id > vid)

The position is absolute, so rows inserted before the cursor or deleted
after being served never shift later pages. Rows inserted after the cursor
are picked up when the reader reaches them.

One range query asks for ``limit + 1`` rows; the extra row only tells
whether another page exists and is never returned.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pagination_engine.core.exceptions import InvalidCursorError
from pagination_engine.infra.logging import get_lazy_logger
from pagination_engine.storage.base import SeekQuery, Window

if TYPE_CHECKING:
    from pagination_engine.core.pagination.sorting import SortSpec
    from pagination_engine.storage.base import RowSource

_lazy = get_lazy_logger(__name__)


class KeysetPager:
    """Seek-based pager over a ``RowSource``.

    Example:
        pager = KeysetPager(source)
        window = await pager.fetch(spec, None, 20)          # first page
        after = spec.values_of(window.rows[-1])
        window = await pager.fetch(spec, after, 20)         # next page
    """

    __slots__ = ("source",)

    def __init__(self, source: RowSource) -> None:
        self.source = source

    def plan(
        self,
        sort: SortSpec,
        after: Sequence[Any] | None,
        limit: int,
        filters: Mapping[str, Any] | None = None,
    ) -> SeekQuery:
        """Validate inputs and build the N+1 seek query without executing it.

        Raises:
            InvalidCursorError: If ``after`` does not have one value per sort field.
            ValueError: If ``limit`` is not positive.
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        if after is not None and len(after) != len(sort):
            raise InvalidCursorError(
                f"cursor has {len(after)} values, sort order has {len(sort)} fields"
            )
        return SeekQuery(
            sort=sort,
            after=tuple(after) if after is not None else None,
            fetch=limit + 1,
            filters=dict(filters or {}),
        )

    async def execute(self, query: SeekQuery) -> Window:
        """Run a planned query and trim the look-ahead row."""
        rows = await self.source.fetch_keyset(query)
        window = Window.from_fetched(rows, query.fetch - 1)
        _lazy.debug(
            lambda: f"keyset.fetch: sort={query.sort.to_expression()} "
            f"after={'set' if query.after is not None else 'none'} "
            f"limit={query.fetch - 1} -> {len(window.rows)} rows, has_more={window.has_more}"
        )
        return window

    async def fetch(
        self,
        sort: SortSpec,
        after: Sequence[Any] | None,
        limit: int,
        filters: Mapping[str, Any] | None = None,
    ) -> Window:
        """Fetch the page following ``after`` (or the first page when None)."""
        return await self.execute(self.plan(sort, after, limit, filters))


__all__ = ["KeysetPager"]
