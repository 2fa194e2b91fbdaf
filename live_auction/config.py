"""Application configuration for the live auction service."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, List, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="LIVE_AUCTION_", extra="ignore")

    # General
    environment: str = "development"
    log_level: str = "INFO"

    # API / broadcaster
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    allowed_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Arbitration
    exclusion_domain: Literal["global", "per_item"] = Field(
        default="global",
        description="Lock granularity for registry mutations",
    )

    # Lifecycle
    sweep_interval_seconds: float = Field(default=5.0, gt=0, description="Seconds between expiry sweeps")
    initial_duration_min_seconds: int = Field(default=180, gt=0)
    initial_duration_max_seconds: int = Field(default=600, gt=0)
    cycle_duration_min_seconds: int = Field(default=180, gt=0)
    cycle_duration_max_seconds: int = Field(default=600, gt=0)
    catalog_path: str | None = Field(default=None, description="JSON file with item templates")
    random_seed: int | None = None

    # Optional event mirror
    redis_url: str | None = None
    redis_channel: str = "live_auction:events"

    @model_validator(mode="after")
    def _check_duration_ranges(self) -> "Settings":
        if self.initial_duration_min_seconds > self.initial_duration_max_seconds:
            raise ValueError("initial_duration_min_seconds must not exceed initial_duration_max_seconds")
        if self.cycle_duration_min_seconds > self.cycle_duration_max_seconds:
            raise ValueError("cycle_duration_min_seconds must not exceed cycle_duration_max_seconds")
        return self

    def model_post_init(self, __context: Any) -> None:
        self.log_level = self.log_level.upper()


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
