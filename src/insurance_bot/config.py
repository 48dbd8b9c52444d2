"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    mindee_base_url: str = "https://api-v2.mindee.net"
    mindee_passport_api_key: str
    mindee_passport_model_id: str
    mindee_vehicle_api_key: str
    mindee_vehicle_model_id: str
    mindee_initial_delay_seconds: float = 3.0
    mindee_poll_interval_seconds: float = 1.2
    mindee_max_poll_attempts: int = 40
    groq_api_key: str
    groq_model: str = "groq/compound"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    policy_price_usd: int = 100
    restart_command: str = "/start"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
