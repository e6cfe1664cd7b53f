"""Unit tests for SQLAlchemy statement filters (compiled SQL, no database)."""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, select
from sqlalchemy.dialects import postgresql

from pagination_engine.core.pagination.sorting import SortSpec
from pagination_engine.storage.filters import CursorFilter, EqualityFilter, OrderByFilter

items = Table(
    "items",
    MetaData(),
    Column("id", Integer, primary_key=True),
    Column("score", Integer),
    Column("title", String),
)

COLUMNS = {"id": items.c.id, "score": items.c.score, "title": items.c.title}


def _sql(statement) -> str:
    return str(
        statement.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True})
    )


class TestOrderByFilter:
    def test_directions_and_null_placement(self):
        stmt = OrderByFilter(COLUMNS, SortSpec.parse("-score,title")).apply(select(items))

        sql = _sql(stmt)

        assert "ORDER BY items.score DESC NULLS FIRST, items.title ASC NULLS LAST, items.id ASC NULLS LAST" in sql


class TestEqualityFilter:
    def test_values_and_nulls(self):
        stmt = EqualityFilter(COLUMNS, {"score": 3, "title": None}).apply(select(items))

        sql = _sql(stmt)

        assert "items.score = 3" in sql
        assert "items.title IS NULL" in sql


class TestCursorFilter:
    def test_no_cursor_leaves_statement_unchanged(self):
        spec = SortSpec.parse("score")
        stmt = select(items)

        assert CursorFilter(COLUMNS, spec, None).apply(stmt) is stmt
        assert CursorFilter(COLUMNS, spec, None).condition() is None

    def test_lexicographic_predicate(self):
        spec = SortSpec.parse("-score")

        sql = _sql(CursorFilter(COLUMNS, spec, (10, 7)).apply(select(items)))

        assert "items.score < 10" in sql
        assert "items.score = 10 AND items.id > 7" in sql

    def test_ascending_includes_nulls_after_value(self):
        spec = SortSpec.parse("title")

        sql = _sql(CursorFilter(COLUMNS, spec, ("m", 3)).apply(select(items)))

        assert "items.title > 'm' OR items.title IS NULL" in sql

    def test_null_cursor_value_descending(self):
        spec = SortSpec.parse("-title")

        sql = _sql(CursorFilter(COLUMNS, spec, (None, 3)).apply(select(items)))

        assert "items.title IS NOT NULL" in sql
        assert "items.title IS NULL AND items.id > 3" in sql
