"""Marketplace configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PREFIX = "MARKETPLACE_"


class MarketplaceConfig(BaseModel):
    """
    Runtime configuration for the marketplace core.

    Money values are cents, durations are seconds.
    """

    # Persistence
    database_url: str | None = Field(
        default=None,
        description="PostgreSQL DSN. Unset means the in-memory store is used.",
    )
    store_timeout_seconds: int = Field(
        default=5,
        description="Upper bound for any single store call",
        ge=1,
        le=60,
    )
    pool_min_connections: int = Field(default=2, ge=1, le=20)
    pool_max_connections: int = Field(default=20, ge=1, le=100)

    # Concurrency
    conflict_retries: int = Field(
        default=1,
        description="Fresh-read retries after an optimistic concurrency conflict",
        ge=0,
        le=3,
    )

    # Search & ranking
    default_task_price_cents: int = Field(
        default=5000,
        description="Price used for ranking tasks that carry no budget",
        ge=0,
    )
    default_rating: float = Field(
        default=4.5,
        description="Rating used for ranking profiles that have none yet",
        ge=0,
        le=5,
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", pattern="^(json|text)$")


def load_config(env_file: Path | None = None) -> MarketplaceConfig:
    """
    Build config from MARKETPLACE_* environment variables.

    A .env file is loaded first (without overriding real environment
    variables).

    Args:
        env_file: Explicit .env path; defaults to python-dotenv's lookup
    """
    load_dotenv(env_file)

    values = {}
    for field_name in MarketplaceConfig.model_fields:
        raw = os.getenv(f"{_ENV_PREFIX}{field_name.upper()}")
        if raw is not None:
            values[field_name] = raw

    return MarketplaceConfig.model_validate(values)
