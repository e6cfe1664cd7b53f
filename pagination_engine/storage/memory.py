"""In-memory row source.

Holds rows (mappings or attribute objects) in a plain list and answers page
queries by sorting with ``SortSpec.compare``, which is the same ordering the
SQL adapter reproduces. Rows can be inserted and deleted between page
requests to exercise the consistency behaviour of each strategy.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Any

from pagination_engine.core.exceptions import UnknownFieldError
from pagination_engine.core.pagination.sorting import SortSpec, read_field
from pagination_engine.storage.base import OffsetQuery, SeekQuery


class InMemoryRowSource:
    """List-backed ``RowSource``.

    Example:
        source = InMemoryRowSource([{"id": 1}, {"id": 2}])
        pager = Pager(source, codec=codec)
    """

    def __init__(self, rows: Iterable[Any] = (), *, fields: Iterable[str] | None = None) -> None:
        """Initialize row source.

        Args:
            rows: Initial rows.
            fields: Known field names. When omitted, a field is known if any
                stored row has it; an empty source accepts every name.
        """
        self._rows: list[Any] = list(rows)
        self._fields = frozenset(fields) if fields is not None else None

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> list[Any]:
        """Snapshot copy of the stored rows in insertion order."""
        return list(self._rows)

    def insert(self, *rows: Any) -> None:
        self._rows.extend(rows)

    def delete(self, predicate: Any) -> int:
        """Remove rows for which ``predicate(row)`` is true; return how many."""
        before = len(self._rows)
        self._rows = [row for row in self._rows if not predicate(row)]
        return before - len(self._rows)

    def validate_fields(self, names: Collection[str]) -> None:
        unknown = [name for name in names if not self._has_field(name)]
        if unknown:
            raise UnknownFieldError(unknown)

    def _has_field(self, name: str) -> bool:
        if self._fields is not None:
            return name in self._fields
        if not self._rows:
            return True
        return any(
            name in row if isinstance(row, Mapping) else hasattr(row, name) for row in self._rows
        )

    async def fetch_keyset(self, query: SeekQuery) -> Sequence[Any]:
        rows = self._ordered(query.sort, query.filters)
        if query.after is not None:
            after = query.after
            rows = [row for row in rows if query.sort.is_after(query.sort.values_of(row), after)]
        return rows[: query.fetch]

    async def fetch_offset(self, query: OffsetQuery) -> Sequence[Any]:
        rows = self._ordered(query.sort, query.filters)
        return rows[query.skip : query.skip + query.fetch]

    async def count(self, filters: Mapping[str, Any]) -> int:
        return len(self._matching(filters))

    def _matching(self, filters: Mapping[str, Any]) -> list[Any]:
        if not filters:
            return list(self._rows)
        return [
            row
            for row in self._rows
            if all(read_field(row, name) == value for name, value in filters.items())
        ]

    def _ordered(self, sort: SortSpec, filters: Mapping[str, Any]) -> list[Any]:
        return sorted(self._matching(filters), key=sort.sort_key())


__all__ = ["InMemoryRowSource"]
