"""Unit tests for count estimators."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from pagination_engine.core.pagination.counting import (
    CachedCountEstimator,
    ExactCountEstimator,
    OmittedCountEstimator,
    build_count_estimator,
    context_key,
)
from pagination_engine.core.settings import PaginationSettings
from pagination_engine.infra.metrics import REGISTRY
from pagination_engine.storage import InMemoryRowSource


class FlakySource(InMemoryRowSource):
    """Row source whose count fails while ``failing`` is set."""

    def __init__(self, rows) -> None:
        super().__init__(rows)
        self.failing = False
        self.count_calls = 0

    async def count(self, filters: Mapping[str, Any]) -> int:
        self.count_calls += 1
        if self.failing:
            raise ConnectionError("database unavailable")
        return await super().count(filters)


def _refresh_samples(result: str) -> float:
    return REGISTRY.get_sample_value("pagination_count_refresh_total", {"result": result}) or 0.0


class TestContextKey:
    def test_order_independent(self):
        assert context_key({"a": 1, "b": 2}) == context_key({"b": 2, "a": 1})

    def test_none_is_empty(self):
        assert context_key(None) == ()


class TestSimpleEstimators:
    """Tests for the omitted and exact estimators."""

    async def test_omitted_returns_none(self):
        assert await OmittedCountEstimator().estimate({}) is None

    async def test_exact_counts_filtered_rows(self, source: InMemoryRowSource):
        estimator = ExactCountEstimator(source)

        assert await estimator.estimate({}) == 25
        assert await estimator.estimate({"category": "even"}) == 12


class TestCachedCountEstimator:
    """Tests for the snapshot-publishing estimator."""

    async def test_unknown_context_returns_none_then_counts(self, rows):
        source = FlakySource(rows)
        estimator = CachedCountEstimator(source, refresh_interval=60)

        assert await estimator.estimate({"category": "odd"}) is None
        assert source.count_calls == 0

        assert await estimator.refresh() == 1
        assert await estimator.estimate({"category": "odd"}) == 13

    async def test_snapshot_is_read_only_and_swapped(self, rows):
        estimator = CachedCountEstimator(FlakySource(rows), refresh_interval=60)
        estimator.track({})
        await estimator.refresh()
        before = estimator.snapshot

        await estimator.refresh()

        assert estimator.snapshot is not before
        with pytest.raises(TypeError):
            estimator.snapshot[()] = None  # type: ignore[index]

    async def test_failed_refresh_keeps_previous_value(self, rows):
        source = FlakySource(rows)
        estimator = CachedCountEstimator(source, refresh_interval=60)
        estimator.track({})
        await estimator.refresh()
        errors_before = _refresh_samples("error")

        source.failing = True
        source.insert({"id": 100, "title": "late", "created_at": None, "category": "even"})
        refreshed = await estimator.refresh()

        assert refreshed == 0
        assert await estimator.estimate({}) == 25
        assert _refresh_samples("error") == errors_before + 1

    async def test_refresh_picks_up_changes(self, rows):
        source = FlakySource(rows)
        estimator = CachedCountEstimator(source, refresh_interval=60)
        estimator.track({})
        await estimator.refresh()

        source.delete(lambda row: row["id"] > 20)
        await estimator.refresh()

        assert await estimator.estimate({}) == 20

    async def test_refresh_without_contexts_is_noop(self, rows):
        source = FlakySource(rows)

        assert await CachedCountEstimator(source).refresh() == 0
        assert source.count_calls == 0

    async def test_background_loop_refreshes(self, rows):
        source = FlakySource(rows)
        estimator = CachedCountEstimator(source, refresh_interval=0.01)
        estimator.track({})

        async with estimator:
            assert estimator.is_running
            assert await estimator.estimate({}) == 25
            source.delete(lambda row: row["id"] > 10)
            for _ in range(100):
                if await estimator.estimate({}) == 10:
                    break
                await asyncio.sleep(0.01)

        assert await estimator.estimate({}) == 10
        assert not estimator.is_running
        assert REGISTRY.get_sample_value("pagination_count_refresher_running") == 0

    async def test_stop_without_start_is_noop(self, rows):
        await CachedCountEstimator(FlakySource(rows)).stop()

    async def test_tracked_contexts_are_capped(self, rows):
        source = FlakySource(rows)
        estimator = CachedCountEstimator(source, refresh_interval=60, max_contexts=10)

        for i in range(1000):
            await estimator.estimate({"category": f"c{i}"})
        await estimator.refresh()

        assert len(estimator.tracked) == 10
        assert len(estimator.snapshot) == 10
        assert source.count_calls == 10
        assert estimator.tracked[0] == context_key({"category": "c990"})

    async def test_least_recently_read_context_evicted(self, rows):
        estimator = CachedCountEstimator(FlakySource(rows), refresh_interval=60, max_contexts=2)
        estimator.track({"category": "odd"})
        estimator.track({"category": "even"})
        await estimator.refresh()

        assert await estimator.estimate({"category": "odd"}) == 13
        await estimator.estimate({})
        await estimator.refresh()

        assert estimator.tracked == [context_key({"category": "odd"}), ()]
        assert context_key({"category": "even"}) not in estimator.snapshot
        assert await estimator.estimate({"category": "odd"}) == 13
        assert await estimator.estimate({}) == 25

    def test_rejects_non_positive_max_contexts(self, rows):
        with pytest.raises(ValueError, match="max_contexts"):
            CachedCountEstimator(FlakySource(rows), max_contexts=0)

    def test_rejects_non_positive_interval(self, rows):
        with pytest.raises(ValueError, match="refresh_interval"):
            CachedCountEstimator(FlakySource(rows), refresh_interval=0)


class TestBuildCountEstimator:
    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            ("exact", ExactCountEstimator),
            ("cached", CachedCountEstimator),
            ("omitted", OmittedCountEstimator),
        ],
    )
    def test_mode_selects_estimator(self, source: InMemoryRowSource, mode, expected):
        assert isinstance(build_count_estimator(mode, source), expected)

    def test_cached_uses_settings_interval(self, source: InMemoryRowSource):
        settings = PaginationSettings(
            count_mode="cached", cache_refresh_interval=5.0, cache_max_contexts=3
        )

        estimator = build_count_estimator("cached", source, settings)

        assert isinstance(estimator, CachedCountEstimator)
        assert estimator._refresh_interval == 5.0
        assert estimator._max_contexts == 3

    def test_unknown_mode_rejected(self, source: InMemoryRowSource):
        with pytest.raises(ValueError, match="Unknown count mode"):
            build_count_estimator("sometimes", source)  # type: ignore[arg-type]
