"""Total-count estimators.

Counting is optional and never on the critical path of a page fetch. Three
implementations are provided:

- ``ExactCountEstimator``: one count query per request, run concurrently
  with the row query by the Pager.
- ``CachedCountEstimator``: a background task recomputes counts on a timer
  and publishes them as an immutable snapshot; requests read the latest
  snapshot without touching storage.
- ``OmittedCountEstimator``: never produces a count.

Example:
    estimator = CachedCountEstimator(source, refresh_interval=30.0)
    async with estimator:
        pager = Pager(source, codec=codec, count_estimator=estimator)
        ...
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from pagination_engine.infra.metrics.pagination import (
    pagination_count_refresh_total,
    pagination_count_refresher_running,
)

if TYPE_CHECKING:
    from pagination_engine.core.settings.pagination import CountMode, PaginationSettings
    from pagination_engine.storage.base import RowSource

logger = logging.getLogger(__name__)

ContextKey = tuple[tuple[str, Any], ...]


def context_key(filter_context: Mapping[str, Any] | None) -> ContextKey:
    """Hashable, order-independent key for a filter context."""
    return tuple(sorted((filter_context or {}).items(), key=lambda item: item[0]))


class CountEstimator(ABC):
    """Supplies total counts for a filtered collection, or None when unavailable."""

    mode: ClassVar[str]

    @abstractmethod
    async def estimate(self, filter_context: Mapping[str, Any]) -> int | None:
        """Return the total count for ``filter_context`` or None."""
        ...


class OmittedCountEstimator(CountEstimator):
    """Estimator used when counts are disabled."""

    mode = "omitted"

    async def estimate(self, filter_context: Mapping[str, Any]) -> int | None:
        return None


class ExactCountEstimator(CountEstimator):
    """Delegates every estimate to a count query on the row source."""

    mode = "exact"

    def __init__(self, source: RowSource) -> None:
        self.source = source

    async def estimate(self, filter_context: Mapping[str, Any]) -> int | None:
        return await self.source.count(dict(filter_context))


@dataclass(slots=True, frozen=True)
class CountSnapshot:
    """A published count value and when it was computed (monotonic seconds)."""

    value: int
    computed_at: float


class CachedCountEstimator(CountEstimator):
    """Periodically refreshed counts served from an atomically swapped snapshot.

    The refresher task is the only writer. Each cycle it counts every filter
    context requested so far and publishes a brand-new read-only mapping, so
    readers observe either the previous snapshot or the new one, never a mix.
    A context seen for the first time returns None and is counted on the
    next cycle. A failed count keeps that context's previous value.

    At most ``max_contexts`` contexts are tracked. Reading a context marks it
    recently used; the least recently read one is dropped when the limit is
    exceeded and its count leaves the snapshot on the next cycle.
    """

    mode = "cached"

    def __init__(
        self,
        source: RowSource,
        refresh_interval: float = 30.0,
        *,
        count_timeout: float | None = None,
        max_contexts: int = 1000,
    ) -> None:
        """Initialize cached estimator.

        Args:
            source: Row source whose ``count`` is called by the refresher.
            refresh_interval: Seconds between refresh cycles.
            count_timeout: Per-context count deadline in seconds.
            max_contexts: Most filter contexts tracked at once.
        """
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")
        if max_contexts < 1:
            raise ValueError("max_contexts must be positive")
        self.source = source
        self._refresh_interval = refresh_interval
        self._count_timeout = count_timeout
        self._max_contexts = max_contexts
        self._snapshot: Mapping[ContextKey, CountSnapshot] = MappingProxyType({})
        self._tracked: OrderedDict[ContextKey, dict[str, Any]] = OrderedDict()
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._stop_event = asyncio.Event()

    async def estimate(self, filter_context: Mapping[str, Any]) -> int | None:
        key = context_key(filter_context)
        self._remember(key, filter_context)
        snapshot = self._snapshot.get(key)
        return snapshot.value if snapshot is not None else None

    def track(self, filter_context: Mapping[str, Any] | None = None) -> None:
        """Register a filter context so the next refresh counts it."""
        ctx = dict(filter_context or {})
        self._remember(context_key(ctx), ctx)

    @property
    def tracked(self) -> list[ContextKey]:
        """Tracked context keys, least recently read first."""
        return list(self._tracked)

    def _remember(self, key: ContextKey, filter_context: Mapping[str, Any]) -> None:
        if key in self._tracked:
            self._tracked.move_to_end(key)
            return
        self._tracked[key] = dict(filter_context)
        while len(self._tracked) > self._max_contexts:
            self._tracked.popitem(last=False)

    @property
    def snapshot(self) -> Mapping[ContextKey, CountSnapshot]:
        """Currently published snapshot (read-only)."""
        return self._snapshot

    async def refresh(self) -> int:
        """Run one refresh cycle and publish the result.

        Returns:
            Number of contexts whose count was recomputed successfully.
        """
        tracked = list(self._tracked.items())
        if not tracked:
            return 0

        results = await asyncio.gather(
            *(self._count(ctx) for _, ctx in tracked),
            return_exceptions=True,
        )

        now = time.monotonic()
        updated = {key: value for key, value in self._snapshot.items() if key in self._tracked}
        refreshed = 0
        for (key, _), result in zip(tracked, results, strict=True):
            if key not in self._tracked:
                continue
            if isinstance(result, BaseException):
                pagination_count_refresh_total.labels(result="error").inc()
                logger.warning(
                    "Count refresh failed, keeping previous value",
                    extra={"context": dict(key), "error": repr(result)},
                )
                continue
            updated[key] = CountSnapshot(value=result, computed_at=now)
            refreshed += 1
            pagination_count_refresh_total.labels(result="ok").inc()

        self._snapshot = MappingProxyType(updated)
        return refreshed

    async def _count(self, ctx: dict[str, Any]) -> int:
        if self._count_timeout is None:
            return await self.source.count(ctx)
        return await asyncio.wait_for(self.source.count(ctx), timeout=self._count_timeout)

    async def _refresh_loop(self) -> None:
        logger.info(
            "Count refresher starting",
            extra={"refresh_interval": self._refresh_interval},
        )
        pagination_count_refresher_running.set(1)
        try:
            while self._running:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._refresh_interval)
                    break
                except asyncio.TimeoutError:
                    pass

                try:
                    await self.refresh()
                except Exception as e:
                    logger.error("Count refresh cycle failed", extra={"error": str(e)})
        finally:
            pagination_count_refresher_running.set(0)
            logger.info("Count refresher stopped")

    async def start(self) -> None:
        """Run an initial refresh, then keep refreshing in the background."""
        if self._running:
            logger.warning("Count refresher already running")
            return

        self._running = True
        self._stop_event.clear()
        await self.refresh()
        self._task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        """Stop the background refresher and wait for it to exit."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def __aenter__(self) -> CachedCountEstimator:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


def build_count_estimator(
    mode: CountMode,
    source: RowSource,
    settings: PaginationSettings | None = None,
) -> CountEstimator:
    """Create the estimator matching a configured ``count_mode``.

    The cached estimator is returned unstarted; the owner starts and stops it.
    """
    if mode == "exact":
        return ExactCountEstimator(source)
    if mode == "cached":
        interval = settings.cache_refresh_interval if settings is not None else 30.0
        timeout = settings.fetch_timeout if settings is not None else None
        max_contexts = settings.cache_max_contexts if settings is not None else 1000
        return CachedCountEstimator(
            source, interval, count_timeout=timeout, max_contexts=max_contexts
        )
    if mode == "omitted":
        return OmittedCountEstimator()
    raise ValueError(f"Unknown count mode {mode!r}")


__all__ = [
    "CachedCountEstimator",
    "CountEstimator",
    "CountSnapshot",
    "ExactCountEstimator",
    "OmittedCountEstimator",
    "build_count_estimator",
    "context_key",
]
