"""Reusable pagination dependencies for FastAPI routes.

Turns query parameters into a ``PageRequest``. Limits are not clamped here:
out-of-range values reach the engine and come back as ``InvalidLimitError``
so every endpoint reports them the same way.

Usage:
    from pagination_engine.core.dependencies.pagination import KeysetPageRequest

    @router.get("/items")
    async def list_items(request: KeysetPageRequest) -> PageResult[ItemResponse]:
        return await pager.paginate(request)

    # Endpoint-specific default sort and allowed fields
    ItemsRequest = Annotated[
        PageRequest,
        Depends(page_request_dependency("keyset", default_sort="-created_at",
                                        allowed_fields={"created_at", "title"})),
    ]
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from typing import Annotated

from fastapi import Depends, HTTPException, Query, status

from pagination_engine.core.pagination.schemas import PageRequest, Strategy
from pagination_engine.core.pagination.sorting import SortSpec
from pagination_engine.core.settings import get_pagination_settings


def _parse_sort(expression: str | None, allowed_fields: Collection[str] | None) -> SortSpec:
    tiebreaker = get_pagination_settings().tiebreaker
    try:
        spec = SortSpec.parse(expression, tiebreaker=tiebreaker)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    if allowed_fields is not None:
        unknown = [
            name for name in spec.field_names if name != tiebreaker and name not in allowed_fields
        ]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Cannot sort by: {', '.join(unknown)}",
            )
    return spec


def page_request_dependency(
    strategy: Strategy,
    *,
    default_sort: str | None = None,
    allowed_fields: Collection[str] | None = None,
    include_total: bool = False,
) -> Callable[..., PageRequest]:
    """Build a dependency producing a PageRequest for ``strategy``.

    Args:
        strategy: ``"keyset"`` or ``"offset"``.
        default_sort: Sort expression used when the client sends none.
        allowed_fields: Fields clients may sort by (None: any field).
        include_total: Whether the request asks for a total count.
    """
    if strategy == "keyset":

        def keyset_request(
            limit: Annotated[int | None, Query(description="Page size")] = None,
            cursor: Annotated[str | None, Query(description="Cursor from next_cursor")] = None,
            sort: Annotated[
                str | None, Query(description="Sort expression, e.g. -created_at,title")
            ] = None,
        ) -> PageRequest:
            return PageRequest(
                strategy="keyset",
                limit=limit,
                cursor=cursor,
                sort=_parse_sort(sort or default_sort, allowed_fields),
                include_total=include_total,
            )

        return keyset_request

    def offset_request(
        limit: Annotated[int | None, Query(description="Page size")] = None,
        page: Annotated[int, Query(description="1-based page number")] = 1,
        sort: Annotated[
            str | None, Query(description="Sort expression, e.g. -created_at,title")
        ] = None,
    ) -> PageRequest:
        return PageRequest(
            strategy="offset",
            limit=limit,
            page=page,
            sort=_parse_sort(sort or default_sort, allowed_fields),
            include_total=include_total,
        )

    return offset_request


get_keyset_page_request = page_request_dependency("keyset")
get_offset_page_request = page_request_dependency("offset", include_total=True)

# Type aliases for cleaner route signatures
KeysetPageRequest = Annotated[PageRequest, Depends(get_keyset_page_request)]
OffsetPageRequest = Annotated[PageRequest, Depends(get_offset_page_request)]
