"""Runtime settings, read from HASHSYNC_* environment variables or .env."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class HashSyncSettings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    socket_timeout: float = Field(5.0, gt=0)
    socket_connect_timeout: float = Field(5.0, gt=0)
    # Opt into server-side atomic bounded increments
    strict_bounds: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    model_config = SettingsConfigDict(env_prefix="HASHSYNC_", env_file=".env", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept level names in any case."""
        return v.upper() if isinstance(v, str) else v


@lru_cache()
def get_settings() -> HashSyncSettings:
    return HashSyncSettings()
