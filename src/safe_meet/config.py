"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    telegram_bot_token: str
    telegram_review_chat_id: int | None = None
    telegram_staff_chat_id: int | None = None
    session_ttl_hours: int = 24
    min_lead_time_minutes: int = 120
    slot_interval_minutes: int = 30
    booking_horizon_days: int = 14
    confirmation_code_attempts: int = 5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
