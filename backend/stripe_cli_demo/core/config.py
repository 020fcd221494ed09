"""Application configuration using Pydantic BaseSettings"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Redis (option store + event log)
    REDIS_URL: str = "redis://localhost:6379/0"
    OPTION_PREFIX: str = "stripe_cli_demo"

    # Domain & URLs
    FRONTEND_URL: str = "http://localhost:3000"
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"

    # OpenTelemetry
    OTEL_EXPORTER_OTLP_ENDPOINT: str = ""
    OTEL_SERVICE_NAME: str = "stripe-cli-demo"
    OTEL_ENVIRONMENT: str = "development"

    # Stripe (fallbacks when the option store has no value)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # Webhooks
    WEBHOOK_TOLERANCE_SECONDS: int = 300  # 0 disables the timestamp check
    EVENT_LOG_CAPACITY: int = 50

    # Operator API
    ADMIN_API_TOKEN: str = ""

    # Pydantic V2 Config
    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("EVENT_LOG_CAPACITY")
    @classmethod
    def check_capacity(cls, v):
        if v < 1:
            raise ValueError("EVENT_LOG_CAPACITY must be at least 1")
        return v

    @field_validator("WEBHOOK_TOLERANCE_SECONDS")
    @classmethod
    def check_tolerance(cls, v):
        if v < 0:
            raise ValueError("WEBHOOK_TOLERANCE_SECONDS cannot be negative")
        return v


# Create global settings instance
settings = Settings()

# --- Module-level Constants ---
WEBHOOK_PATH = "/webhook"
