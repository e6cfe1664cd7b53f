"""Shared response schemas."""

from pagination_engine.core.schemas.problem_details import ProblemDetails

__all__ = ["ProblemDetails"]
