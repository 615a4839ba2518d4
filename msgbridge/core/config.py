from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from msgbridge.services.timestamps import TimestampFormat


class Settings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True)

    app_name: str = "msgbridge"
    environment: str = "local"
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    auth_scheme: Literal["shared_secret", "bearer"] = Field(
        default="shared_secret", alias="AUTH_SCHEME"
    )
    shared_secret: str = Field(default="", alias="SHARED_SECRET")
    secret_header: str = Field(default="x-secret", alias="SECRET_HEADER")
    server_timestamp_format: TimestampFormat = Field(
        default="iso_seconds", alias="SERVER_TIMESTAMP_FORMAT"
    )

    messages_api_url: str = Field(default="http://localhost:8080", alias="MESSAGES_API_URL")
    client_timeout_seconds: float = Field(default=10.0, gt=0, alias="CLIENT_TIMEOUT_SECONDS")
    client_timestamp_format: TimestampFormat = Field(
        default="epoch_millis", alias="CLIENT_TIMESTAMP_FORMAT"
    )

    dd_service: str = Field(default="msgbridge", alias="DD_SERVICE")
    dd_env: str = Field(default="local", alias="DD_ENV")
    dd_version: str = Field(default="0.1.0", alias="DD_VERSION")
    dd_agent_host: str | None = Field(default=None, alias="DD_AGENT_HOST")
    dd_dogstatsd_port: int = Field(default=8125, alias="DD_DOGSTATSD_PORT")
    tracing_enabled: bool = Field(default=False, alias="TRACING_ENABLED")

    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    stats_enabled: bool = Field(default=True, alias="STATS_ENABLED")


@lru_cache
def get_settings() -> Settings:
    return Settings()
