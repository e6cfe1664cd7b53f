"""Storage collaborator contract.

The engine never executes queries itself. Pagers describe what they need as
a ``SeekQuery`` or ``OffsetQuery`` and hand it to a ``RowSource``; the source
returns at most ``query.fetch`` rows in SortSpec order.

Implementations:
    - ``InMemoryRowSource``: in-process list, used by tests and embedding.
    - ``SQLAlchemyRowSource``: async SQLAlchemy ``select()`` statements.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pagination_engine.core.pagination.sorting import SortSpec


@dataclass(slots=True, frozen=True)
class SeekQuery:
    """Ordered range query for keyset pagination.

    Attributes:
        sort: Ordering of the result (tiebreaker included).
        after: Values rows must sort strictly after, or None for the first page.
        fetch: Number of rows to return (page size + 1).
        filters: Equality filters scoping the collection.
    """

    sort: SortSpec
    after: tuple[Any, ...] | None
    fetch: int
    filters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class OffsetQuery:
    """Skip/limit query for offset pagination."""

    sort: SortSpec
    skip: int
    fetch: int
    filters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Window:
    """Rows for one page plus the N+1 look-ahead verdict."""

    rows: Sequence[Any]
    has_more: bool

    @classmethod
    def from_fetched(cls, rows: Sequence[Any], limit: int) -> Window:
        """Trim an N+1 fetch to ``limit`` rows and derive ``has_more``."""
        return cls(rows=list(rows[:limit]), has_more=len(rows) > limit)


@runtime_checkable
class RowSource(Protocol):
    """Async storage collaborator queried by the pagers and count estimators.

    Sort fields must hold values a cursor can carry: None, bool, int, float,
    str, bytes, Decimal, UUID, datetime or date. Any other type fails the
    keyset run with ``CursorEncodingError`` once a next cursor is needed.
    """

    def validate_fields(self, names: Collection[str]) -> None:
        """Raise ``UnknownFieldError`` unless every name is sortable and filterable."""
        ...

    async def fetch_keyset(self, query: SeekQuery) -> Sequence[Any]:
        """Return up to ``query.fetch`` rows sorting strictly after ``query.after``."""
        ...

    async def fetch_offset(self, query: OffsetQuery) -> Sequence[Any]:
        """Return up to ``query.fetch`` rows after skipping ``query.skip``."""
        ...

    async def count(self, filters: Mapping[str, Any]) -> int:
        """Return the exact number of rows matching ``filters``."""
        ...


__all__ = ["OffsetQuery", "RowSource", "SeekQuery", "Window"]
