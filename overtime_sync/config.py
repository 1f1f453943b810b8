"""
Configuration settings for overtime-sync.

Uses Pydantic Settings to load environment variables for the remote blob
store, the background poller, local persistence, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Remote blob store
    remote_base_url: str = Field("https://kvdb.io/6L5qE8vE2uA7pYn9", alias="REMOTE_BASE_URL")
    project_key: str = Field("v3_ailton_overtime_prod_final_99", alias="PROJECT_KEY")
    records_key: str = Field("recs", alias="RECORDS_KEY")
    users_key: str = Field("users", alias="USERS_KEY")
    config_key: str = Field("config", alias="CONFIG_KEY")
    remote_write_method: str = Field("PUT", alias="REMOTE_WRITE_METHOD")
    request_timeout_seconds: float = Field(8.0, alias="REQUEST_TIMEOUT_SECONDS")
    remote_max_attempts: int = Field(2, alias="REMOTE_MAX_ATTEMPTS")
    rate_limit_cooldown_seconds: float = Field(30.0, alias="RATE_LIMIT_COOLDOWN_SECONDS")

    # Sync
    sync_interval_seconds: float = Field(15.0, alias="SYNC_INTERVAL_SECONDS")

    # Local persistence
    data_dir: Path = Field(Path("~/.overtime_sync"), alias="DATA_DIR")

    # Organization
    coordinator_name: str = Field("Ailton Souza", alias="COORDINATOR_NAME")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir.expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
