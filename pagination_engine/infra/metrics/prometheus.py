"""Prometheus registry and shared bucket definitions."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, generate_latest

# Custom registry so embedding applications control what gets exposed
REGISTRY = CollectorRegistry()

# Storage query latency from 1ms to 10s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)


def render_metrics() -> bytes:
    """Render every metric in ``REGISTRY`` in the Prometheus text format."""
    return generate_latest(REGISTRY)
