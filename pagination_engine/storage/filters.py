"""SQLAlchemy statement filters for keyset and offset pagination.

The seek filter replaces OFFSET with a WHERE clause that starts right after
the cursor row. For ORDER BY created_at DESC, id ASC with cursor (t1, id1):

    WHERE (created_at < t1) OR (created_at = t1 AND id > id1)

NULLs are placed explicitly (NULLS LAST for ASC, NULLS FIRST for DESC) so
the database order matches ``SortSpec.compare`` on every backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, false, or_

from pagination_engine.core.pagination.sorting import SortField, SortSpec


class StatementFilter(ABC):
    """Base class for statement filters.

    All filters implement ``apply()`` which returns a modified statement.
    """

    @abstractmethod
    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Apply filter to statement."""
        ...


class EqualityFilter(StatementFilter):
    """``column = value`` for every item of a filter mapping (``IS NULL`` for None)."""

    def __init__(self, columns: Mapping[str, ColumnElement[Any]], filters: Mapping[str, Any]) -> None:
        self.columns = columns
        self.filters = filters

    def apply(self, statement: Select[Any]) -> Select[Any]:
        for name, value in self.filters.items():
            column = self.columns[name]
            statement = statement.where(column.is_(None) if value is None else column == value)
        return statement


class OrderByFilter(StatementFilter):
    """ORDER BY every field of a SortSpec with explicit NULL placement."""

    def __init__(self, columns: Mapping[str, ColumnElement[Any]], sort: SortSpec) -> None:
        self.columns = columns
        self.sort = sort

    def apply(self, statement: Select[Any]) -> Select[Any]:
        for field in self.sort.fields:
            column = self.columns[field.name]
            if field.descending:
                statement = statement.order_by(column.desc().nulls_first())
            else:
                statement = statement.order_by(column.asc().nulls_last())
        return statement


class CursorFilter(StatementFilter):
    """Seek past a cursor position using a compound WHERE clause.

    For fields (a, b, c) with cursor values (v1, v2, v3):

        (a after v1) OR
        (a = v1 AND b after v2) OR
        (a = v1 AND b = v2 AND c after v3)

    where "after" is ``>`` for ascending fields and ``<`` for descending
    ones, extended to NULLs following the engine's null ordering.

    Example:
        stmt = CursorFilter(columns, spec, after=(created_at, 42)).apply(stmt)
    """

    def __init__(
        self,
        columns: Mapping[str, ColumnElement[Any]],
        sort: SortSpec,
        after: Sequence[Any] | None,
    ) -> None:
        self.columns = columns
        self.sort = sort
        self.after = tuple(after) if after is not None else None

    def apply(self, statement: Select[Any]) -> Select[Any]:
        condition = self.condition()
        if condition is None:
            return statement
        return statement.where(condition)

    def condition(self) -> ColumnElement[bool] | None:
        """Build the seek predicate, or None when there is no cursor."""
        if self.after is None:
            return None

        or_conditions: list[ColumnElement[bool]] = []
        eq_conditions: list[ColumnElement[bool]] = []
        for field, value in zip(self.sort.fields, self.after, strict=True):
            column = self.columns[field.name]
            or_conditions.append(and_(*eq_conditions, _after(column, field, value)))
            eq_conditions.append(column.is_(None) if value is None else column == value)

        return or_(*or_conditions)


def _after(column: ColumnElement[Any], field: SortField, value: Any) -> ColumnElement[bool]:
    # NULL is the largest value: after it (asc) comes nothing, after it (desc)
    # comes every non-null value. Unique fields are never NULL.
    if value is None:
        return column.is_not(None) if field.descending else false()
    if field.descending:
        return column < value
    if field.unique:
        return column > value
    return or_(column > value, column.is_(None))


__all__ = [
    "CursorFilter",
    "EqualityFilter",
    "OrderByFilter",
    "StatementFilter",
]
