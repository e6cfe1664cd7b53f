"""Prometheus metrics for the pagination engine."""

from pagination_engine.infra.metrics.prometheus import REGISTRY, render_metrics

__all__ = ["REGISTRY", "render_metrics"]
