"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Viewing Booking API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # JWT
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Booking engine
    booking_slot_start_hour: int = Field(default=9, ge=0, le=23, alias="BOOKING_SLOT_START_HOUR")
    booking_slot_end_hour: int = Field(default=17, ge=0, le=23, alias="BOOKING_SLOT_END_HOUR")
    booking_slot_interval_minutes: int = Field(
        default=60,
        ge=5,
        le=720,
        alias="BOOKING_SLOT_INTERVAL_MINUTES",
        description="Spacing of the daily viewing slot grid",
    )
    booking_max_retries: int = Field(
        default=5,
        ge=1,
        alias="BOOKING_MAX_RETRIES",
        description="Attempts per booking transaction before reporting a conflict",
    )
    booking_retry_backoff_seconds: float = Field(
        default=0.05,
        ge=0,
        alias="BOOKING_RETRY_BACKOFF_SECONDS",
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    @model_validator(mode="after")
    def check_slot_grid(self) -> "Settings":
        """The daily grid must contain at least one slot."""
        if self.booking_slot_end_hour < self.booking_slot_start_hour:
            raise ValueError("BOOKING_SLOT_END_HOUR must not be before BOOKING_SLOT_START_HOUR")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
