"""Pagination facade.

``Pager.paginate`` serves one ``PageRequest``. Every call runs in a fresh
``PaginationRun`` moving through

    IDLE -> VALIDATING -> FETCHING -> ASSEMBLING -> DONE

and ending in FAILED when validation rejects the request (before any storage
call), the storage query fails or outlives its deadline, or the next cursor
cannot be encoded. Nothing survives between calls.

Usage:
    pager = Pager(source, codec=CursorCodec(secret), max_limit=100)

    first = await pager.paginate(PageRequest(strategy="keyset", limit=20, sort="-created_at"))
    second = await pager.paginate(
        PageRequest(strategy="keyset", limit=20, sort="-created_at", cursor=first.next_cursor)
    )
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pagination_engine.core.exceptions import (
    CursorEncodingError,
    InvalidCursorError,
    InvalidLimitError,
    InvalidPageError,
    PaginationError,
    PaginationTimeoutError,
    UpstreamQueryFailedError,
)
from pagination_engine.core.pagination.counting import (
    CountEstimator,
    OmittedCountEstimator,
    build_count_estimator,
)
from pagination_engine.core.pagination.cursor import CursorCodec
from pagination_engine.core.pagination.keyset import KeysetPager
from pagination_engine.core.pagination.offset import OffsetPager
from pagination_engine.core.pagination.schemas import PageRequest, PageResult
from pagination_engine.infra.logging import get_lazy_logger
from pagination_engine.infra.metrics.pagination import observe_fetch, track_request

if TYPE_CHECKING:
    from pagination_engine.core.settings.pagination import PaginationSettings
    from pagination_engine.storage.base import OffsetQuery, RowSource, SeekQuery, Window

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)

_DEFAULT = object()


class PagerState(StrEnum):
    """States of one pagination run."""

    IDLE = "idle"
    VALIDATING = "validating"
    FETCHING = "fetching"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[PagerState, frozenset[PagerState]] = {
    PagerState.IDLE: frozenset({PagerState.VALIDATING}),
    PagerState.VALIDATING: frozenset({PagerState.FETCHING, PagerState.FAILED}),
    PagerState.FETCHING: frozenset({PagerState.ASSEMBLING, PagerState.FAILED}),
    PagerState.ASSEMBLING: frozenset({PagerState.DONE, PagerState.FAILED}),
    PagerState.DONE: frozenset(),
    PagerState.FAILED: frozenset(),
}


class PaginationRun:
    """Single-use execution of one ``PageRequest``.

    Attributes:
        request: The request being served.
        state: Current state.
        history: Every state visited, in order.
    """

    def __init__(self, pager: Pager, request: PageRequest, timeout: float | None) -> None:
        self._pager = pager
        self.request = request
        self.timeout = timeout
        self.state = PagerState.IDLE
        self.history: list[PagerState] = [PagerState.IDLE]

    def _transition(self, target: PagerState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pagination transition {self.state} -> {target}")
        self.state = target
        self.history.append(target)

    async def execute(self) -> PageResult[Any]:
        """Run the request to completion.

        Raises:
            PaginationError: Any validation, upstream, timeout or cursor encoding failure.
            RuntimeError: If the run was already executed.
        """
        strategy = self.request.strategy

        self._transition(PagerState.VALIDATING)
        try:
            limit, query = self._validate()
        except PaginationError as e:
            self._fail(e)
            raise

        self._transition(PagerState.FETCHING)
        try:
            window, total = await self._fetch(query)
        except PaginationError as e:
            self._fail(e)
            raise

        self._transition(PagerState.ASSEMBLING)
        try:
            result = self._assemble(window, limit, total)
        except PaginationError as e:
            self._fail(e)
            raise
        self._transition(PagerState.DONE)

        track_request(strategy, "ok")
        _lazy.debug(
            lambda: f"paginate: strategy={strategy} limit={limit} -> "
            f"{len(result.items)} items, has_more={result.has_more}, total={result.total_count}"
        )
        return result

    def _fail(self, error: PaginationError) -> None:
        self._transition(PagerState.FAILED)
        track_request(self.request.strategy, error.type)
        level = logging.WARNING if error.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "Pagination request failed",
            extra={
                "strategy": self.request.strategy,
                "error_type": error.type,
                "detail": str(error),
                "failed_in": self.history[-2].value,
            },
        )

    def _validate(self) -> tuple[int, SeekQuery | OffsetQuery]:
        pager = self._pager
        request = self.request

        limit = request.limit if request.limit is not None else pager.default_limit
        if limit < 1 or limit > pager.max_limit:
            raise InvalidLimitError(limit, pager.max_limit)

        names = [field.name for field in request.sort.fields]
        pager.source.validate_fields([*names, *(k for k in request.filters if k not in names)])

        if request.strategy == "offset":
            if request.cursor is not None:
                raise InvalidCursorError("cursor supplied with offset strategy")
            page = request.page if request.page is not None else 1
            return limit, pager.offset.plan(request.sort, page, limit, request.filters)

        if request.page is not None:
            raise InvalidPageError(
                "page supplied with keyset strategy; use the cursor instead",
                extra={"page": request.page},
            )
        after = None
        if request.cursor is not None:
            after = pager.codec.decode(request.cursor, expected=request.sort).values
        return limit, pager.keyset.plan(request.sort, after, limit, request.filters)

    async def _fetch(self, query: SeekQuery | OffsetQuery) -> tuple[Window, int | None]:
        count_task: asyncio.Task[int | None] | None = None
        if self.request.include_total and not isinstance(
            self._pager.count_estimator, OmittedCountEstimator
        ):
            count_task = asyncio.create_task(self._estimate_count())

        try:
            window = await self._query_with_deadline(query)
        except BaseException:
            if count_task is not None:
                count_task.cancel()
            raise

        total = await count_task if count_task is not None else None
        return window, total

    async def _query_with_deadline(self, query: SeekQuery | OffsetQuery) -> Window:
        strategy = self.request.strategy
        started = time.perf_counter()
        try:
            return await asyncio.wait_for(self._run_query(query), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            if self.timeout is None:
                raise UpstreamQueryFailedError(strategy, e) from e
            raise PaginationTimeoutError(strategy, self.timeout) from e
        except PaginationError:
            raise
        except Exception as e:
            raise UpstreamQueryFailedError(strategy, e) from e
        finally:
            observe_fetch(strategy, time.perf_counter() - started)

    async def _run_query(self, query: SeekQuery | OffsetQuery) -> Window:
        if self.request.strategy == "offset":
            return await self._pager.offset.execute(query)  # type: ignore[arg-type]
        return await self._pager.keyset.execute(query)  # type: ignore[arg-type]

    async def _estimate_count(self) -> int | None:
        try:
            return await asyncio.wait_for(
                self._pager.count_estimator.estimate(self.request.filters),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Count estimate timed out, omitting total",
                extra={"strategy": self.request.strategy, "timeout": self.timeout},
            )
        except Exception as e:
            logger.warning(
                "Count estimate failed, omitting total",
                extra={"strategy": self.request.strategy, "error": repr(e)},
            )
        return None

    def _assemble(self, window: Window, limit: int, total: int | None) -> PageResult[Any]:
        request = self.request
        if request.strategy == "offset":
            page = request.page if request.page is not None else 1
            return PageResult(
                items=list(window.rows),
                has_more=window.has_more,
                strategy="offset",
                limit=limit,
                page=page,
                next_page=page + 1 if window.has_more else None,
                previous_page=page - 1 if page > 1 else None,
                total_count=total,
            )

        next_cursor = None
        if window.has_more and window.rows:
            try:
                next_cursor = self._pager.codec.encode_row(window.rows[-1], request.sort)
            except (TypeError, ValueError) as e:
                raise CursorEncodingError(e) from e
        return PageResult(
            items=list(window.rows),
            has_more=window.has_more,
            strategy="keyset",
            limit=limit,
            next_cursor=next_cursor,
            total_count=total,
        )


class Pager:
    """Dispatches page requests to the keyset or offset pager.

    Example:
        pager = Pager(
            source,
            codec=CursorCodec(settings.cursor_secret.get_secret_value()),
            max_limit=settings.max_limit,
            default_limit=settings.default_limit,
            max_skip_depth=settings.max_skip_depth,
        )
    """

    def __init__(
        self,
        source: RowSource,
        *,
        codec: CursorCodec,
        count_estimator: CountEstimator | None = None,
        max_limit: int = 100,
        default_limit: int = 20,
        max_skip_depth: int = 10_000,
        timeout: float | None = None,
    ) -> None:
        """Initialize pager.

        Args:
            source: Storage collaborator.
            codec: Cursor codec used for keyset tokens.
            count_estimator: Total count provider (None: counts omitted).
            max_limit: Largest accepted page size.
            default_limit: Page size used when a request has none.
            max_skip_depth: Deepest skip an offset query may perform.
            timeout: Default per-request deadline in seconds (None: no deadline).
        """
        if max_limit < 1:
            raise ValueError("max_limit must be positive")
        if not 1 <= default_limit <= max_limit:
            raise ValueError("default_limit must be between 1 and max_limit")
        self.source = source
        self.codec = codec
        self.count_estimator = count_estimator or OmittedCountEstimator()
        self.max_limit = max_limit
        self.default_limit = default_limit
        self.timeout = timeout
        self.keyset = KeysetPager(source)
        self.offset = OffsetPager(source, max_skip_depth=max_skip_depth)

    def start(self, request: PageRequest, *, timeout: Any = _DEFAULT) -> PaginationRun:
        """Create a fresh run for ``request`` without executing it."""
        effective = self.timeout if timeout is _DEFAULT else timeout
        return PaginationRun(self, request, effective)

    async def paginate(self, request: PageRequest, *, timeout: Any = _DEFAULT) -> PageResult[Any]:
        """Serve one page.

        Args:
            request: The page request.
            timeout: Deadline in seconds for the storage query; defaults to the
                pager's configured timeout, None disables it.

        Returns:
            PageResult for the requested window.

        Raises:
            InvalidLimitError: limit outside ``[1, max_limit]``.
            InvalidPageError: page below 1, or page given for keyset.
            InvalidCursorError: undecodable cursor, or cursor given for offset.
            UnknownFieldError: sort or filter field unknown to the row source.
            CursorSortMismatchError: cursor minted under another sort order.
            MaxOffsetExceededError: offset deeper than ``max_skip_depth``.
            UpstreamQueryFailedError: the row source raised.
            PaginationTimeoutError: the deadline expired.
            CursorEncodingError: a sort value of the last row has no cursor encoding.
        """
        return await self.start(request, timeout=timeout).execute()


def build_pager(
    source: RowSource,
    settings: PaginationSettings | None = None,
    *,
    count_estimator: CountEstimator | None = None,
) -> Pager:
    """Create a Pager configured from ``PaginationSettings``.

    Args:
        source: Storage collaborator.
        settings: Settings to apply (default: cached process settings).
        count_estimator: Overrides the estimator implied by ``count_mode``.
            A cached estimator built here is returned unstarted on
            ``pager.count_estimator``; its owner starts and stops it.
    """
    if settings is None:
        from pagination_engine.core.settings import get_pagination_settings

        settings = get_pagination_settings()

    estimator = count_estimator or build_count_estimator(settings.count_mode, source, settings)
    return Pager(
        source,
        codec=CursorCodec(
            settings.cursor_secret.get_secret_value(), version=settings.cursor_version
        ),
        count_estimator=estimator,
        max_limit=settings.max_limit,
        default_limit=settings.default_limit,
        max_skip_depth=settings.max_skip_depth,
        timeout=settings.fetch_timeout,
    )


__all__ = ["Pager", "PagerState", "PaginationRun", "build_pager"]
