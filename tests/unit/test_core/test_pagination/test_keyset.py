"""Unit tests for KeysetPager."""

from __future__ import annotations

from typing import Any

import pytest

from pagination_engine.core.exceptions import InvalidCursorError
from pagination_engine.core.pagination.keyset import KeysetPager
from pagination_engine.core.pagination.sorting import SortSpec
from pagination_engine.storage import InMemoryRowSource


async def _walk(pager: KeysetPager, spec: SortSpec, limit: int, **filters: Any) -> list[list[int]]:
    pages: list[list[int]] = []
    after = None
    while True:
        window = await pager.fetch(spec, after, limit, filters)
        pages.append([row["id"] for row in window.rows])
        if not window.has_more:
            return pages
        after = spec.values_of(window.rows[-1])


class TestKeysetPlan:
    """Tests for query planning."""

    def test_plan_fetches_one_extra_row(self, source: InMemoryRowSource):
        query = KeysetPager(source).plan(SortSpec.parse("title"), None, 10)

        assert query.fetch == 11
        assert query.after is None

    def test_plan_rejects_wrong_arity(self, source: InMemoryRowSource):
        with pytest.raises(InvalidCursorError):
            KeysetPager(source).plan(SortSpec.parse("title"), ("a",), 10)

    def test_plan_rejects_non_positive_limit(self, source: InMemoryRowSource):
        with pytest.raises(ValueError, match="positive"):
            KeysetPager(source).plan(SortSpec.parse("title"), None, 0)


class TestKeysetFetch:
    """Tests for seek pagination over the in-memory source."""

    @pytest.mark.parametrize("expression", ["id", "-created_at", "title", "-title,created_at"])
    @pytest.mark.parametrize("limit", [1, 4, 7, 25, 30])
    async def test_pages_partition_collection(
        self, source: InMemoryRowSource, rows, expression: str, limit: int
    ):
        """Walking every page yields each row exactly once, in sort order."""
        spec = SortSpec.parse(expression)
        expected = [row["id"] for row in sorted(rows, key=spec.sort_key())]

        pages = await _walk(KeysetPager(source), spec, limit)

        assert [row_id for page in pages for row_id in page] == expected
        assert all(len(page) <= limit for page in pages)
        assert all(len(page) == limit for page in pages[:-1])

    async def test_exact_multiple_has_no_empty_trailing_page(self, row_factory):
        source = InMemoryRowSource(row_factory(10))

        pages = await _walk(KeysetPager(source), SortSpec.parse("id"), 5)

        assert pages == [[1, 2, 3, 4, 5], [6, 7, 8, 9, 10]]

    async def test_empty_collection(self):
        window = await KeysetPager(InMemoryRowSource()).fetch(SortSpec.parse("id"), None, 10)

        assert list(window.rows) == []
        assert window.has_more is False

    async def test_nulls_sort_last_ascending(self, source: InMemoryRowSource):
        spec = SortSpec.parse("title")

        pages = await _walk(KeysetPager(source), spec, 4)
        ids = [row_id for page in pages for row_id in page]

        assert ids[-6:] == [4, 8, 12, 16, 20, 24]

    async def test_nulls_sort_first_descending(self, source: InMemoryRowSource):
        spec = SortSpec.parse("-title")

        pages = await _walk(KeysetPager(source), spec, 4)
        ids = [row_id for page in pages for row_id in page]

        assert ids[:6] == [4, 8, 12, 16, 20, 24]

    async def test_filters_scope_pages(self, source: InMemoryRowSource):
        pages = await _walk(KeysetPager(source), SortSpec.parse("id"), 5, category="even")

        assert [row_id for page in pages for row_id in page] == list(range(2, 26, 2))


class TestKeysetStability:
    """Tests for consistency under concurrent writes."""

    async def test_insert_before_cursor_does_not_shift(self, source: InMemoryRowSource):
        spec = SortSpec.parse("id")
        pager = KeysetPager(source)
        first = await pager.fetch(spec, None, 5)

        source.insert({"id": 0, "title": "new", "created_at": None, "category": "odd"})
        second = await pager.fetch(spec, spec.values_of(first.rows[-1]), 5)

        assert [row["id"] for row in second.rows] == [6, 7, 8, 9, 10]

    async def test_delete_served_row_does_not_shift(self, source: InMemoryRowSource):
        spec = SortSpec.parse("id")
        pager = KeysetPager(source)
        first = await pager.fetch(spec, None, 5)

        source.delete(lambda row: row["id"] <= 5)
        second = await pager.fetch(spec, spec.values_of(first.rows[-1]), 5)

        assert [row["id"] for row in second.rows] == [6, 7, 8, 9, 10]

    async def test_insert_after_cursor_is_picked_up(self, source: InMemoryRowSource):
        spec = SortSpec.parse("id")
        pager = KeysetPager(source)
        first = await pager.fetch(spec, None, 5)

        source.delete(lambda row: 6 <= row["id"] <= 10)
        source.insert({"id": 7, "title": "re", "created_at": None, "category": "odd"})
        second = await pager.fetch(spec, spec.values_of(first.rows[-1]), 5)

        assert [row["id"] for row in second.rows] == [7, 11, 12, 13, 14]
