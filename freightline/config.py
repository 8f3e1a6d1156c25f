"""Engine configuration: env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from a .env file and FREIGHTLINE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    """Engine configuration with environment variable overrides.

    All settings can be overridden via FREIGHTLINE_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export FREIGHTLINE_LOG_LEVEL=DEBUG
        export FREIGHTLINE_STORE_PATH=/data/freightline.db

    Or via .env file::

        FREIGHTLINE_ENVIRONMENT=production
        FREIGHTLINE_DEFAULT_NAMESPACE=payments
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FREIGHTLINE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage
    store_path: Path = Path(".freightline/store.db")

    # Resource defaults
    default_namespace: str = "default"

    # Optimistic concurrency: how many times a read-mutate-write cycle reruns
    conflict_retries: int = Field(default=5, ge=1)

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton, import as `from freightline.config import config`
config = EngineConfig()
