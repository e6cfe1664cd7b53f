"""Offset and keyset pagination with opaque, signed cursors.

Keyset (cursor) pagination is:
- Stable: rows inserted before the cursor or deleted after being served
  never shift later pages
- Performant: indexed seeks instead of OFFSET scans
- Deterministic: every sort order ends with a unique tiebreaker

Offset pagination is kept for page-number navigation of shallow result
sets; depth is capped and it gives no consistency guarantee under writes.

Usage:
    pager = build_pager(source)
    result = await pager.paginate(
        PageRequest(strategy="keyset", limit=50, sort="-created_at", cursor=token)
    )
    result.items, result.next_cursor
"""

from pagination_engine.core.pagination.counting import (
    CachedCountEstimator,
    CountEstimator,
    ExactCountEstimator,
    OmittedCountEstimator,
    build_count_estimator,
)
from pagination_engine.core.pagination.cursor import CursorCodec, DecodedCursor
from pagination_engine.core.pagination.guard import ConsistencyGuard
from pagination_engine.core.pagination.keyset import KeysetPager
from pagination_engine.core.pagination.offset import OffsetPager
from pagination_engine.core.pagination.pager import Pager, PagerState, PaginationRun, build_pager
from pagination_engine.core.pagination.schemas import PageRequest, PageResult
from pagination_engine.core.pagination.sorting import SortField, SortSpec

__all__ = [
    "CachedCountEstimator",
    "ConsistencyGuard",
    "CountEstimator",
    "CursorCodec",
    "DecodedCursor",
    "ExactCountEstimator",
    "KeysetPager",
    "OffsetPager",
    "OmittedCountEstimator",
    "PageRequest",
    "PageResult",
    "Pager",
    "PagerState",
    "PaginationRun",
    "SortField",
    "SortSpec",
    "build_count_estimator",
    "build_pager",
]
