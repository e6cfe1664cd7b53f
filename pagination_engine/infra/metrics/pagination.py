"""Prometheus metrics for pagination requests and count refreshes.

Usage:
    from pagination_engine.infra.metrics.pagination import track_request

    track_request(strategy="keyset", outcome="ok")
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from pagination_engine.infra.metrics.prometheus import DEFAULT_LATENCY_BUCKETS, REGISTRY

# ──────────────────────────────────────────────────────────────
# Page requests
# ──────────────────────────────────────────────────────────────

pagination_requests_total = Counter(
    "pagination_requests_total",
    "Pagination requests by strategy and outcome. "
    "outcome is 'ok' or the error type (e.g. 'invalid-cursor', 'pagination-timeout').",
    ["strategy", "outcome"],
    registry=REGISTRY,
)

pagination_fetch_duration_seconds = Histogram(
    "pagination_fetch_duration_seconds",
    "Duration of the storage query backing one page, in seconds.",
    ["strategy"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Cached count refresher
# ──────────────────────────────────────────────────────────────

pagination_count_refresh_total = Counter(
    "pagination_count_refresh_total",
    "Cached count refresh cycles by result ('ok' or 'error').",
    ["result"],
    registry=REGISTRY,
)

pagination_count_refresher_running = Gauge(
    "pagination_count_refresher_running",
    "1 while the cached count refresher task is running, else 0.",
    registry=REGISTRY,
)


def track_request(strategy: str, outcome: str) -> None:
    """Count one finished pagination request."""
    pagination_requests_total.labels(strategy=strategy, outcome=outcome).inc()


def observe_fetch(strategy: str, duration: float) -> None:
    """Record the storage query duration of one page."""
    pagination_fetch_duration_seconds.labels(strategy=strategy).observe(duration)


__all__ = [
    "observe_fetch",
    "pagination_count_refresh_total",
    "pagination_count_refresher_running",
    "pagination_fetch_duration_seconds",
    "pagination_requests_total",
    "track_request",
]
