"""
Core application configuration using Pydantic Settings.

All environment variables are loaded here and validated.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App Configuration
    APP_NAME: str = "PetCare"
    APP_VERSION: str = "0.1.0"
    APP_URL: str = "http://localhost:8000"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str

    # Auth collaborator (access tokens are issued elsewhere, we only verify them)
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = None

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    # Rate Limiting
    RATE_LIMIT_STORAGE_URL: Optional[str] = None
    PROMO_VALIDATION_RATE_LIMIT: str = "10/minute"  # Promo codes are guessable

    # Sentry Monitoring
    SENTRY_DSN: Optional[str] = None

    # Payment processor callback
    PAYMENT_WEBHOOK_SECRET: Optional[str] = None

    # Entitlements
    DEFAULT_TIER_NAME: str = "free"  # Tier used when a user has no active subscription
    LOW_REMAINING_THRESHOLD: int = 3  # Warn when this many calls (or fewer) remain
    SUBSCRIPTION_PERIOD_MONTHS: int = 1

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Set Celery URLs to Redis if not explicitly set
        if not self.CELERY_BROKER_URL:
            self.CELERY_BROKER_URL = self.REDIS_URL
        if not self.CELERY_RESULT_BACKEND:
            self.CELERY_RESULT_BACKEND = self.REDIS_URL
        if not self.RATE_LIMIT_STORAGE_URL:
            self.RATE_LIMIT_STORAGE_URL = self.REDIS_URL

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
settings = Settings()
