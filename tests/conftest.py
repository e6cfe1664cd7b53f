"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated, cache-free settings per test
    - Row Fixtures: in-memory rows with repeated sort values and NULLs
    - Engine Fixtures: codec, row source and pager wired together
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pagination_engine.core.pagination import CursorCodec, Pager
from pagination_engine.core.settings import clear_all_caches
from pagination_engine.storage import InMemoryRowSource

TEST_SECRET = "test-cursor-secret"

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch: pytest.MonkeyPatch):
    """Drop cached settings and PAGINATION_/LOG_ env overrides around each test."""
    for key in list(os.environ):
        if key.startswith(("PAGINATION_", "LOG_")):
            monkeypatch.delenv(key, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Row Fixtures
# ============================================================================


def make_rows(count: int) -> list[dict[str, Any]]:
    """Rows with ids 1..count; created_at repeats every 3 rows, every 4th title is None."""
    return [
        {
            "id": i,
            "created_at": BASE_TIME + timedelta(hours=(i - 1) // 3),
            "title": None if i % 4 == 0 else f"item-{i:03d}",
            "category": "even" if i % 2 == 0 else "odd",
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def row_factory():
    """Factory building ``make_rows(count)``."""
    return make_rows


@pytest.fixture
def rows() -> list[dict[str, Any]]:
    """Twenty-five rows with duplicate sort values and NULL titles."""
    return make_rows(25)


@pytest.fixture
def small_rows() -> list[dict[str, Any]]:
    """Rows with ids 1..5."""
    return make_rows(5)


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def codec() -> CursorCodec:
    """Cursor codec signing with the test secret."""
    return CursorCodec(TEST_SECRET)


@pytest.fixture
def source(rows: list[dict[str, Any]]) -> InMemoryRowSource:
    """In-memory row source over ``rows``."""
    return InMemoryRowSource(rows)


@pytest.fixture
def pager(source: InMemoryRowSource, codec: CursorCodec) -> Pager:
    """Pager with small limits so depth caps are easy to hit."""
    return Pager(source, codec=codec, max_limit=50, default_limit=10, max_skip_depth=100)
