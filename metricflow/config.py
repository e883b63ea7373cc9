"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./metricflow.db"
DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


class AppSettings(BaseSettings):
    """Configuration options for the MetricFlow service."""

    app_name: str = Field(default="MetricFlow API")
    service_name: str = Field(default="metricflow")
    route_prefix: str = Field(
        default="",
        description="Fixed path prefix mounted in front of every route, e.g. /make-server.",
    )

    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy database URL backing the key-value store and the local identity provider.",
    )

    identity_backend: Literal["local", "supabase"] = Field(default="local")
    supabase_url: str | None = Field(default=None)
    supabase_anon_key: str | None = Field(default=None)
    supabase_service_role_key: str | None = Field(default=None)
    identity_timeout_seconds: float = Field(default=15.0)
    token_lifetime_hours: int = Field(default=24 * 7, ge=1)
    password_reset_redirect_url: str | None = Field(default=None)

    backend_cors_origins: str | None = Field(
        default=None,
        description="Comma-separated list of origins allowed by CORS.",
    )

    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="metricflow")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_prefix = "METRICFLOW_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> list[str]:
        if not self.backend_cors_origins:
            return list(DEFAULT_CORS_ORIGINS)
        return [o.strip() for o in self.backend_cors_origins.split(",") if o.strip()]

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"supabase_anon_key", "supabase_service_role_key"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_CORS_ORIGINS",
    "DEFAULT_DATABASE_URL",
    "get_settings",
]
