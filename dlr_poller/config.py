"""
Configuration settings for the DLR poller.

Uses Pydantic Settings to load environment variables for the Kannel
configuration location, worker pool sizing, polling cadence, HTTP clients
and logging. CLI options override these values at startup.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STATUS_URL = "http://smsc.ru/sys/status.php"


class Settings(BaseSettings):
    # Kannel configuration (routing table + storage coordinates)
    kannel_conf: str = Field("/etc/kannel/kannel.conf", alias="DLR_CONF")

    # Poller
    workers: int = Field(10, alias="DLR_WORKERS", ge=1)
    limit: int = Field(1000, alias="DLR_LIMIT", ge=1)
    pause: int = Field(60, alias="DLR_PAUSE", ge=0)
    blocked_pause: int = Field(600, alias="DLR_BLOCKED_PAUSE", ge=0)
    shutdown_grace: float = Field(30.0, alias="DLR_SHUTDOWN_GRACE", ge=0)

    # HTTP
    status_url: str = Field(DEFAULT_STATUS_URL, alias="DLR_STATUS_URL")
    http_timeout: float = Field(30.0, alias="DLR_HTTP_TIMEOUT", gt=0)

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    log_syslog: bool = Field(False, alias="LOG_SYSLOG")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["DEFAULT_STATUS_URL", "Settings", "get_settings"]
