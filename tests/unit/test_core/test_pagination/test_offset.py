"""Unit tests for OffsetPager."""

from __future__ import annotations

import pytest

from pagination_engine.core.exceptions import InvalidPageError, MaxOffsetExceededError
from pagination_engine.core.pagination.offset import OffsetPager
from pagination_engine.core.pagination.sorting import SortSpec
from pagination_engine.storage import InMemoryRowSource


class TestOffsetPlan:
    """Tests for skip computation and depth limits."""

    def test_skip_from_page_and_limit(self, source: InMemoryRowSource):
        query = OffsetPager(source).plan(SortSpec.parse("id"), 3, 10)

        assert query.skip == 20
        assert query.fetch == 11

    @pytest.mark.parametrize("page", [0, -1])
    def test_page_below_one_rejected(self, source: InMemoryRowSource, page: int):
        with pytest.raises(InvalidPageError) as exc_info:
            OffsetPager(source).plan(SortSpec.parse("id"), page, 10)

        assert exc_info.value.status_code == 422
        assert exc_info.value.extra == {"page": page}

    def test_skip_at_cap_allowed(self, source: InMemoryRowSource):
        query = OffsetPager(source, max_skip_depth=20).plan(SortSpec.parse("id"), 3, 10)

        assert query.skip == 20

    def test_skip_beyond_cap_rejected(self, source: InMemoryRowSource):
        with pytest.raises(MaxOffsetExceededError) as exc_info:
            OffsetPager(source, max_skip_depth=20).plan(SortSpec.parse("id"), 4, 10)

        assert exc_info.value.skip == 30
        assert exc_info.value.max_skip_depth == 20

    def test_negative_cap_rejected(self, source: InMemoryRowSource):
        with pytest.raises(ValueError, match="max_skip_depth"):
            OffsetPager(source, max_skip_depth=-1)


class TestOffsetFetch:
    """Tests for page retrieval."""

    async def test_pages_in_sort_order(self, source: InMemoryRowSource, rows):
        spec = SortSpec.parse("-created_at")
        expected = [row["id"] for row in sorted(rows, key=spec.sort_key())]
        pager = OffsetPager(source)

        first = await pager.fetch(spec, 1, 10)
        third = await pager.fetch(spec, 3, 10)

        assert [row["id"] for row in first.rows] == expected[:10]
        assert first.has_more is True
        assert [row["id"] for row in third.rows] == expected[20:]
        assert third.has_more is False

    async def test_page_past_end_is_empty(self, source: InMemoryRowSource):
        window = await OffsetPager(source).fetch(SortSpec.parse("id"), 10, 10)

        assert list(window.rows) == []
        assert window.has_more is False

    async def test_insert_shifts_later_pages(self, source: InMemoryRowSource):
        """Offset pages are positional: an insert before them repeats a row."""
        spec = SortSpec.parse("id")
        pager = OffsetPager(source)
        first = await pager.fetch(spec, 1, 5)

        source.insert({"id": 0, "title": "new", "created_at": None, "category": "even"})
        second = await pager.fetch(spec, 2, 5)

        assert first.rows[-1]["id"] == 5
        assert second.rows[0]["id"] == 5
