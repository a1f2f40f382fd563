"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

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

    # Application
    app_name: str = "guestflow"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Marketplace API
    api_base_url: str = "http://localhost:5000/api"
    api_timeout: float = 30.0
    api_token: Optional[str] = Field(default=None)

    # Public site (post-booking payment page)
    site_url: str = "https://jambolush.com"

    # Money
    default_currency: str = "RWF"

    # Check-in protocol
    checkin_code_length: int = 6

    # Payment at property
    payment_gate_countdown_seconds: int = 20
    payment_gate_tick_seconds: float = 1.0
    payment_gate_message: str = "requires payment at the property"

    # Booking conversion
    guest_limit: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
