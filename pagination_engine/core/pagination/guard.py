"""Consistency checks between a decoded cursor and the current sort order.

A cursor only describes a position within the ordering it was minted
under. Resuming with a cursor from a different ordering (server-side sort
change, another endpoint, a forged token) would seek to a meaningless
position, so the request is rejected instead. Reconfiguration and stale
cursors are deliberately not told apart: both raise
``CursorSortMismatchError`` and the client restarts from the first page.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from pagination_engine.core.exceptions import CursorSortMismatchError, InvalidCursorError

if TYPE_CHECKING:
    from pagination_engine.core.pagination.cursor import DecodedCursor
    from pagination_engine.core.pagination.sorting import SortSpec


class ConsistencyGuard:
    """Validate decoded cursors against the SortSpec of the current request."""

    @staticmethod
    def validate(decoded: DecodedCursor, sort: SortSpec) -> None:
        """Check signature and arity of ``decoded`` against ``sort``.

        Raises:
            CursorSortMismatchError: If the signatures differ.
            InvalidCursorError: If the value count does not match the spec.
        """
        current = sort.signature
        if not hmac.compare_digest(decoded.signature, current):
            raise CursorSortMismatchError(decoded.signature, current)
        if len(decoded.values) != len(sort):
            raise InvalidCursorError(
                f"cursor has {len(decoded.values)} values, sort order has {len(sort)} fields"
            )


__all__ = ["ConsistencyGuard"]
