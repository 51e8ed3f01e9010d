"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the API, the worker and beat.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal, Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    DATABASE_URL: str = Field(default="sqlite:///./fitsocial.db")
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration (report markers + dispatch locks)
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # EmailJS delivery
    EMAIL_ENABLED: bool = Field(default=False)
    EMAILJS_API_ENDPOINT: str = Field(default="https://api.emailjs.com/api/v1.0/email/send")
    EMAILJS_SERVICE_ID: Optional[str] = Field(default=None)
    EMAILJS_PUBLIC_KEY: Optional[str] = Field(default=None)
    EMAILJS_WEEKLY_TEMPLATE_ID: str = Field(default="weekly_summary_template")
    EMAILJS_AI_WEEKLY_TEMPLATE_ID: str = Field(default="ai_weekly_summary_template")
    EMAIL_SEND_TIMEOUT_S: float = Field(default=10.0, gt=0)

    # Weekly report scheduling
    REPORT_SEND_WEEKDAY: int = Field(default=0, ge=0, le=6)  # 0 = Sunday
    REPORT_SEND_HOUR: int = Field(default=19, ge=0, le=23)
    WEEK_FIRST_DAY: int = Field(default=0, ge=0, le=6)  # 0 = Sunday
    WEEK_NUMBERING: Literal["legacy", "iso"] = Field(default="legacy")
    DISPATCH_RESET_DELAY_S: int = Field(default=10, ge=0)
    REPORT_LOCK_TTL_S: int = Field(default=120, gt=0)
    REPORT_CHECK_INTERVAL_S: int = Field(default=3600, gt=0)

    # Reminders
    REMINDER_CHECK_INTERVAL_S: int = Field(default=60, gt=0)

    # Users without an IANA timezone are evaluated in this zone
    DEFAULT_TIMEZONE: str = Field(default="UTC")

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)


# Global settings instance
settings = Settings()
