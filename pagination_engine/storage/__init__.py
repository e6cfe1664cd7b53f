"""Storage collaborators queried by the pagers."""

from pagination_engine.storage.base import OffsetQuery, RowSource, SeekQuery, Window
from pagination_engine.storage.memory import InMemoryRowSource
from pagination_engine.storage.sql import SQLAlchemyRowSource

__all__ = [
    "InMemoryRowSource",
    "OffsetQuery",
    "RowSource",
    "SQLAlchemyRowSource",
    "SeekQuery",
    "Window",
]
