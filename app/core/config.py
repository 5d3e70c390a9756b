# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./tracker.db")
    APP_NAME: str = "Community Tracker API"
    APP_DESC: str = "Report bugs, suggest improvements, and vote on ideas"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Auth
    SECRET_KEY: str = "dev-only-insecure-key-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    # Admin console credentials; login is refused while either is unset
    ADMIN_USERNAME: str | None = None
    ADMIN_PASSWORD: str | None = None

    # Comma-separated; "*" allows all
    CORS_ORIGINS: str = "*"

    # Realtime
    PRESENCE_TTL_SECONDS: float = 5.0
    PRESENCE_SWEEP_SECONDS: float = 1.0
    REALTIME_KEEPALIVE_SECONDS: int = 15

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_configured(self) -> bool:
        return bool(self.ADMIN_USERNAME) and bool(self.ADMIN_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
