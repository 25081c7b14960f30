"""Centralized configuration for the trace collector using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod

Besides the environment flag and log level, the settings carry the knobs of
the collection pipeline: where the JSONL logs live, how long to wait after an
action before taking the "after" snapshot, and whether screenshots are taken.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `BROWSERTRACE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    data_dir : Path
        Directory holding the JSONL logs and screenshots; maps from
        `BROWSERTRACE_DATA_DIR`.
    settle_ms : int
        Fixed pause between the end of an action and the after-snapshot.
    screenshots : bool
        Capture before/after PNGs for every recorded action.
    snapshot_retries : int
        Extra attempts made when a page snapshot fails mid-capture.
    default_model : str
        Model identifier stamped on sessions when the caller gives none.
    """

    environment: EnvName = Field(default="dev", alias="BROWSERTRACE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    data_dir: Path = Field(default=Path("training-data"), alias="BROWSERTRACE_DATA_DIR")
    settle_ms: int = Field(default=500, ge=0, alias="BROWSERTRACE_SETTLE_MS")
    screenshots: bool = Field(default=True, alias="BROWSERTRACE_SCREENSHOTS")
    snapshot_retries: int = Field(default=0, ge=0, le=3, alias="BROWSERTRACE_SNAPSHOT_RETRIES")
    default_model: str = Field(default="claude-sonnet", alias="BROWSERTRACE_MODEL")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    Tests force a rebuild via `load_settings.cache_clear()` after mutating
    `os.environ`.
    """
    os.environ.setdefault("BROWSERTRACE_ENV", "dev")
    return Settings()


settings: Settings = load_settings()


def get_logger(name: str = "browsertrace") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
