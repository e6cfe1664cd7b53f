"""Async SQLAlchemy row source.

Each query opens its own session from an ``async_sessionmaker`` so the row
query and a concurrent count query never share a connection.

Example:
    from sqlalchemy import select
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    engine = create_async_engine("postgresql+asyncpg://...")
    source = SQLAlchemyRowSource(
        async_sessionmaker(engine, expire_on_commit=False),
        Item,
        statement=select(Item).where(Item.archived.is_(False)),
    )
    pager = build_pager(source)
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.orm import ColumnProperty, InstrumentedAttribute

from pagination_engine.core.exceptions import UnknownFieldError
from pagination_engine.infra.logging import get_lazy_logger
from pagination_engine.storage.filters import CursorFilter, EqualityFilter, OrderByFilter

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from pagination_engine.core.pagination.sorting import SortSpec
    from pagination_engine.storage.base import OffsetQuery, SeekQuery

_lazy = get_lazy_logger(__name__)


class _ModelColumns(Mapping[str, ColumnElement[Any]]):
    """Resolve field names to column attributes of an ORM model.

    Relationships, methods and other non-column attributes are not fields.
    """

    def __init__(self, model: type[Any], overrides: Mapping[str, ColumnElement[Any]]) -> None:
        self._model = model
        self._overrides = overrides

    def __getitem__(self, name: str) -> ColumnElement[Any]:
        if name in self._overrides:
            return self._overrides[name]
        attr = getattr(self._model, name, None)
        if isinstance(attr, ColumnElement):
            return attr
        if isinstance(attr, InstrumentedAttribute) and isinstance(attr.property, ColumnProperty):
            return attr
        raise KeyError(f"{self._model.__name__} has no sortable field {name!r}")

    def __iter__(self) -> Any:
        return iter(self._overrides)

    def __len__(self) -> int:
        return len(self._overrides)


class SQLAlchemyRowSource:
    """``RowSource`` backed by an async SQLAlchemy session factory.

    Attributes:
        model: Mapped class returned by the statement.
        statement: Base ``select()`` (filters applied, no ordering or limit).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[Any],
        *,
        statement: Select[Any] | None = None,
        columns: Mapping[str, ColumnElement[Any]] | None = None,
    ) -> None:
        """Initialize row source.

        Args:
            session_factory: Factory producing one AsyncSession per query.
            model: ORM model whose attributes back the sort and filter fields.
            statement: Base statement; defaults to ``select(model)``.
            columns: Extra name -> column mappings (e.g. labelled expressions).
        """
        self._session_factory = session_factory
        self.model = model
        self.statement = statement if statement is not None else select(model)
        self.columns = _ModelColumns(model, columns or {})

    def validate_fields(self, names: Collection[str]) -> None:
        unknown = [name for name in names if name not in self.columns]
        if unknown:
            raise UnknownFieldError(unknown)

    def build_keyset_statement(self, query: SeekQuery) -> Select[Any]:
        stmt = self._base(query.filters, query.sort)
        stmt = CursorFilter(self.columns, query.sort, query.after).apply(stmt)
        return stmt.limit(query.fetch)

    def build_offset_statement(self, query: OffsetQuery) -> Select[Any]:
        stmt = self._base(query.filters, query.sort)
        return stmt.offset(query.skip).limit(query.fetch)

    async def fetch_keyset(self, query: SeekQuery) -> Sequence[Any]:
        return await self._scalars(self.build_keyset_statement(query))

    async def fetch_offset(self, query: OffsetQuery) -> Sequence[Any]:
        return await self._scalars(self.build_offset_statement(query))

    async def count(self, filters: Mapping[str, Any]) -> int:
        stmt = EqualityFilter(self.columns, filters).apply(self.statement)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        async with self._session_factory() as session:
            total = (await session.execute(count_stmt)).scalar_one()
        _lazy.debug(lambda: f"db.count: {self.model.__name__}(filters={dict(filters)}) -> {total}")
        return total

    def _base(self, filters: Mapping[str, Any], sort: SortSpec) -> Select[Any]:
        stmt = EqualityFilter(self.columns, filters).apply(self.statement)
        return OrderByFilter(self.columns, sort).apply(stmt)

    async def _scalars(self, stmt: Select[Any]) -> list[Any]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())
        _lazy.debug(lambda: f"db.page: {self.model.__name__} -> {len(rows)} rows")
        return rows


__all__ = ["SQLAlchemyRowSource"]
