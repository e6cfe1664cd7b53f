"""Pagination engine settings.

Environment variables use the PAGINATION_ prefix.
Example: PAGINATION_MAX_LIMIT=100, PAGINATION_COUNT_MODE=cached
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CountMode = Literal["exact", "cached", "omitted"]


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_limit: Page size used when a request does not specify one.
        max_limit: Largest accepted page size; larger requests are rejected.
        max_skip_depth: Largest number of rows an offset query may skip.
        count_mode: How total counts are produced (exact, cached, omitted).
        cache_refresh_interval: Seconds between cached count refreshes.
        cache_max_contexts: Most filter contexts the cached estimator tracks.
        fetch_timeout: Default deadline in seconds for one page query (None: no deadline).
        cursor_secret: HMAC key signing cursor tokens.
        cursor_version: Cursor format version written into new tokens.
        tiebreaker: Unique field appended to every sort order.

    Example:
        settings = PaginationSettings(max_limit=50)
        pager = build_pager(source, settings)
    """

    default_limit: int = Field(
        default=20,
        ge=1,
        le=10000,
        description="Default page size when limit not specified",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum allowed page size (hard limit)",
    )
    max_skip_depth: int = Field(
        default=10000,
        ge=0,
        description="Maximum rows an offset query may skip",
    )
    count_mode: CountMode = Field(
        default="omitted",
        description="Total count strategy (exact|cached|omitted)",
    )
    cache_refresh_interval: float = Field(
        default=30.0,
        gt=0,
        le=86400,
        description="Seconds between cached count refreshes (count_mode=cached)",
    )
    cache_max_contexts: int = Field(
        default=1000,
        ge=1,
        description="Filter contexts the cached count refresher keeps (least recently read dropped)",
    )
    fetch_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Default page query deadline in seconds (None disables)",
    )
    cursor_secret: SecretStr = Field(
        default=SecretStr("pagination-engine-dev-secret"),
        description="HMAC key for cursor tokens; set per deployment",
    )
    # Only versions CursorCodec can write and read.
    cursor_version: int = Field(
        default=1,
        ge=1,
        le=1,
        description="Format version written into new cursor tokens",
    )
    tiebreaker: str = Field(
        default="id",
        min_length=1,
        description="Unique, non-null field appended to every sort order",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_default_within_max(self) -> PaginationSettings:
        """Reject a default page size the engine itself would refuse."""
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) must not exceed max_limit ({self.max_limit})"
            )
        return self
