"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

DEFAULT_TABLE_PREFIX = "rollout_"
DEFAULT_CREDENTIAL_COLUMN = "credentialId"
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class ConfigurationError(RuntimeError):
    """Raised when required connection settings are missing."""


class AppSettings(BaseSettings):
    """Configuration options for the CRM activity dashboard service."""

    app_name: str = Field(default="CRM Activity Dashboard")
    api_prefix: str = Field(default="/api")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy database URL. Takes precedence over the discrete DB_* settings.",
    )
    db_host: str | None = Field(default=None)
    db_port: int = Field(default=5432)
    db_name: str | None = Field(default=None, validation_alias=AliasChoices("DB_NAME", "DB_DATABASE"))
    db_user: str | None = Field(default=None, validation_alias=AliasChoices("DB_USER", "DB_USERNAME"))
    db_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_PASSWORD", "DB_PASS", "POSTGRES_PASSWORD"),
    )
    db_ssl: bool | None = Field(default=None, description="Force TLS on or off; unset means auto.")
    db_ssl_reject_unauthorized: bool = Field(default=False)
    database_schema: str | None = Field(
        default=None,
        description="Schema searched for synced tables. None uses the connection's default.",
    )

    source_table_prefix: str = Field(default=DEFAULT_TABLE_PREFIX)
    credential_column: str = Field(default=DEFAULT_CREDENTIAL_COLUMN)
    discovery_cache_ttl_seconds: float = Field(default=0.0, ge=0.0)
    credential_list_limit: int = Field(default=200, ge=1)

    rollout_api_base_url: str = Field(default="https://universal.rollout.com/api")
    rollout_app_key: str | None = Field(default=None)
    rollout_user_id: str = Field(default="user123")
    rollout_client_secret: str | None = Field(default=None)
    rollout_project_key: str | None = Field(default=None)
    rollout_client_id: str | None = Field(default=None)
    rollout_token_ttl_seconds: int = Field(default=3600, gt=0)
    rollout_token_algorithm: Literal["HS256", "HS384", "HS512"] = Field(default="HS512")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="crm-dashboard")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def resolve_database_url(self) -> URL:
        """Return the async SQLAlchemy URL for the row store."""

        if self.database_url:
            url = make_url(self.database_url)
            if url.drivername in {"postgres", "postgresql"}:
                url = url.set(drivername="postgresql+asyncpg")
            return url
        if not self.db_host:
            raise ConfigurationError("DATABASE_URL or DB_HOST is required")
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )

    def ssl_mode(self) -> str | None:
        """Return the asyncpg ``ssl`` argument, or None when TLS is off."""

        if self.db_ssl is False:
            return None
        host = self.resolve_database_url().host or ""
        if self.db_ssl is None and host in LOCAL_HOSTS:
            return None
        return "verify-full" if self.db_ssl_reject_unauthorized else "require"

    def rollout_issuer(self) -> str | None:
        return self.rollout_project_key or self.rollout_client_id

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"database_url", "db_password", "rollout_client_secret"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "ConfigurationError",
    "DEFAULT_CREDENTIAL_COLUMN",
    "DEFAULT_TABLE_PREFIX",
    "get_settings",
]
