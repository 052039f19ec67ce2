from __future__ import annotations

from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ADMIN_PASSWORD_HASH = (
    "$2b$12$sdOU8uwfeIt/6CaZUIM6ke71zg30wHn0r3QC4TDA3xHYwQxTVEEXi"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    secret_key: str = Field(min_length=32)
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30, ge=1, le=60 * 24 * 30)

    admin_username: str = Field(default="admin", min_length=3, max_length=64)
    admin_password_hash: str = Field(default=DEFAULT_ADMIN_PASSWORD_HASH, min_length=10)

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    session_cookie: str = Field(default="iotdash_session", min_length=1, max_length=64)
    session_max_age_seconds: int = Field(default=60 * 60 * 8, ge=60, le=60 * 60 * 24 * 30)

    telemetry_source: Literal["mock", "thingsboard", "http"] = Field(default="mock")
    telemetry_source_url: AnyHttpUrl | None = Field(default=None)
    telemetry_window: int = Field(default=60, ge=1, le=10_000)
    telemetry_timeout_seconds: float = Field(default=5.0, ge=0.5, le=30.0)
    poll_enabled: bool = Field(default=True)

    thingsboard_token: str | None = Field(default=None)
    thingsboard_device_id: str | None = Field(default=None)
    thingsboard_api_url: AnyHttpUrl = Field(default="https://demo.thingsboard.io")

    push_enabled: bool = Field(default=False)
    mqtt_host: str = Field(default="localhost", min_length=1)
    mqtt_port: int = Field(default=1883, ge=1, le=65535)
    mqtt_username: str | None = Field(default=None)
    mqtt_password: str | None = Field(default=None)
    push_path: str = Field(default="telemetry", min_length=1, max_length=256)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def thingsboard_configured(self) -> bool:
        return bool(self.thingsboard_token) and bool(self.thingsboard_device_id)


def load_settings() -> Settings:
    settings = Settings()
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings
