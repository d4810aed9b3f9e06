"""Application configuration."""
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./compliance_alerts.db"
    DB_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Alert engine
    ALERT_SCHEDULER_ENABLED: bool = True
    ALERT_STARTUP_DELAY_SECONDS: int = 5
    ALERT_INTERVAL_MINUTES: int = 60
    ALERT_CLEANUP_INTERVAL_HOURS: int = 24
    ALERT_RETENTION_DAYS: int = 30

    # Per entity type tier overrides, e.g. {"license": {"14": "high", "45": "low"}}
    ALERT_THRESHOLD_OVERRIDES: Dict[str, Dict[int, str]] = {}

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
