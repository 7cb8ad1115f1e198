"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./eventdash.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Listing
    PAGE_SIZE: int = 10

    # Reminder window, measured back from the event date
    REMINDER_MIN_LEAD_MINUTES: int = 15
    REMINDER_MAX_LEAD_DAYS: int = 7

    # Notification poller
    API_BASE_URL: str = "http://localhost:8000"
    POLL_INTERVAL_SECONDS: float = 30.0
    ALERT_FRESHNESS_SECONDS: float = 60.0

    # Page-1 listing cache
    CACHE_TTL_SECONDS: float = 60.0
    CACHE_MAX_ENTRIES: int = 1024

    # Owned by the identity provider that issues sessions
    SESSION_TTL_MINUTES: int = 30

    class Config:
        env_file = ".env"


settings = Settings()
