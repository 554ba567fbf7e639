"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance afterwards.

  BaseSettings (pydantic-settings): values come from environment variables and
      an optional .env file. Field names map to env var names
      (database_url -> DATABASE_URL).

  @model_validator(mode="after"): DEBUG-conditional DATABASE_URL policy. Dev
      mode falls back to a local SQLite file with a warning; production mode
      refuses to start without an explicit URL.

Layer rule: core/ is the kernel. This module may not import from accounts/ or
api/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("accounts.config")

_DEV_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'accounts_dev.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in tests with
    DEBUG=true and nothing else set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    # Empty string is the sentinel for "not configured"; the validator below
    # either substitutes the dev database or raises.
    database_url: str = ""
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL {value!r}")
        return level

    @model_validator(mode="after")
    def validate_database_url(self) -> "Settings":
        """Dev mode: default to a local SQLite file. Production: DATABASE_URL is required."""
        if not self.database_url:
            if self.debug:
                self.database_url = _DEV_DB_URL
                logger.warning("DATABASE_URL not set; using development database %s", _DEV_DB_URL)
            else:
                raise ValueError(
                    "DATABASE_URL is required in production mode. "
                    "Set DATABASE_URL in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between cases that need
    different environment variables.
    """
    return Settings()
