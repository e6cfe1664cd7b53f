"""Exception handlers turning pagination errors into RFC 7807 responses.

Register on the application that exposes paginated endpoints:

    app = FastAPI()
    configure_exception_handlers(app)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pagination_engine.core.exceptions import PaginationError
from pagination_engine.core.schemas import ProblemDetails

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _create_problem_detail(exc: PaginationError, instance: str) -> dict[str, Any]:
    problem = ProblemDetails(
        type=exc.type,
        title=exc.title,
        status=exc.status_code,
        detail=exc.detail,
        instance=exc.instance or instance,
    )
    response_data = problem.model_dump(exclude_none=True)
    if exc.extra:
        response_data.update(exc.extra)
    return response_data


async def pagination_exception_handler(request: Request, exc: PaginationError) -> JSONResponse:
    """Render a PaginationError as Problem Details.

    Args:
        request: The FastAPI request object.
        exc: The pagination error that was raised.

    Returns:
        JSONResponse with the error's status code and RFC 7807 body.
    """
    request_id = _get_request_id(request)

    logger.info(
        "Pagination error response",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
        },
    )

    problem_data = _create_problem_detail(exc, request.url.path)
    if request_id:
        problem_data["request_id"] = request_id

    return JSONResponse(status_code=exc.status_code, content=problem_data)


def configure_exception_handlers(app: FastAPI) -> None:
    """Register pagination exception handlers on ``app``."""
    app.add_exception_handler(PaginationError, pagination_exception_handler)  # type: ignore[arg-type]
