from __future__ import annotations

import os
import secrets
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chirpy.logging import get_logger

logger = get_logger(__name__)


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


class Settings(BaseModel):
    """Runtime settings read from the environment (and an optional .env file)."""

    database_url: str = env_field("postgresql://localhost:5432/chirpy", "DB_URL")
    use_memory_store: bool = env_field(False, "USE_MEMORY_STORE")
    test_mode: bool = env_field(False, "TEST_MODE")
    platform: str = env_field(
        "prod",
        "PLATFORM",
        description="Deployment platform; destructive admin routes require 'dev'",
    )
    jwt_secret: str = env_field(None, "JWT_SECRET", validate_default=True)
    access_token_ttl_seconds: int = env_field(
        60 * 60,
        "ACCESS_TOKEN_TTL_SECONDS",
        description="Default access token lifetime; login requests may override it",
    )
    refresh_token_ttl_days: int = env_field(60, "REFRESH_TOKEN_TTL_DAYS")
    polka_key: str | None = env_field(
        None, "POLKA_KEY", description="API key expected on payment webhooks"
    )
    fileserver_root: str = env_field(".", "FILESERVER_ROOT")
    api_host: str = env_field("0.0.0.0", "API_HOST")
    api_port: int = env_field(8080, "API_PORT")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        return cls(**merged)

    @field_validator("access_token_ttl_seconds", "refresh_token_ttl_days")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("token lifetimes must be positive")
        return value

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def _ensure_jwt_secret(cls, value: str | None) -> str:
        if value:
            return value
        logger.warning(
            "jwt_secret_generated",
            message="JWT_SECRET is not set; issued tokens will not survive a restart",
        )
        return secrets.token_urlsafe(64)

    @property
    def is_dev(self) -> bool:
        return self.platform == "dev"


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings.from_env()
    return _settings_cache


_settings_cache: Settings | None = None


def reset_settings_cache() -> None:
    """Clear cached settings so future calls re-read the environment."""

    global _settings_cache
    _settings_cache = None
