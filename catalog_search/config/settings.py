"""Environment-based application settings. Read-only; no business logic."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="catalog-search", description="Service name")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Runtime environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level name")

    # Server
    host: str = Field(default="0.0.0.0", description="Listen host")
    port: int = Field(default=8000, ge=1, le=65535, description="Listen port")

    # Search engine (see config/search/static for how these fold into the runtime options)
    search_options_file: str | None = Field(default=None, description="JSON file with search options")
    search_host: str = Field(default="http://localhost", description="Search engine host URL")
    search_port: int = Field(default=9200, ge=1, le=65535, description="Search engine port")
    search_connection_attempts: int = Field(default=10, ge=1, description="Startup connection attempts")
    search_connection_attempt_interval: int = Field(
        default=5000, ge=0, description="Interval between startup connection attempts (ms)"
    )
    search_index_prefix: str = Field(default="vendure-", description="Prefix for search index names")
    search_batch_size: int = Field(default=2000, ge=1, description="Bulk operation batch size")
    search_username: str | None = Field(default=None, description="Search engine username")
    search_password: str | None = Field(default=None, description="Search engine password")
    search_use_ssl: bool | None = Field(default=None, description="Use HTTPS to the search engine")
    search_verify_certs: bool | None = Field(default=None, description="Verify TLS certificates")
    search_timeout: int | None = Field(default=None, ge=1, description="Request timeout (seconds)")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance. Use for app lifetime."""
    return Settings()
