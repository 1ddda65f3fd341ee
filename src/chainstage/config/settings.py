"""
Application settings using Pydantic.

Provides environment-based configuration loading with CHAINSTAGE_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Ledger
    ledger_backend: str = "json"  # json, sql, memory
    ledger_dir: str = "deployments"
    ledger_url: str = "sqlite:///deployments.db"

    # Artifacts
    artifacts_dir: str = "artifacts"

    # Networks
    default_network: str | None = None
    config_path: str | None = None

    # RPC client settings
    rpc_timeout: float = 30.0
    rpc_max_retries: int = 3
    rpc_retry_backoff_factor: float = 2.0

    # Publish confirmation
    confirmation_timeout: float = 120.0
    confirmation_poll_interval: float = 1.0

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "CHAINSTAGE_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
