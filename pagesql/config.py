"""Runtime settings, read from ``PAGESQL_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAGESQL_",
        case_sensitive=False,
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    # SQLite itself refuses trees deeper than 20 levels (BTCURSOR_MAX_DEPTH)
    max_tree_depth: int = Field(
        default=20, ge=1, le=64, description="Deepest b-tree a traversal will descend"
    )


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
