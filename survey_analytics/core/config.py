"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Survey Analytics API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    # WHY: Tokens are issued by the identity service; this API only verifies them
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./survey_analytics.db"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Analytics
    TREND_WINDOW_DAYS: int = 7
    # Completion times at or above this are excluded from the daily series
    COMPLETION_TIME_OUTLIER_SECONDS: int = 7200
    # Optional hard cap on how many documents a single analytics request loads
    ANALYTICS_MAX_RECORDS: Optional[int] = None

    # Response sessions
    SESSION_ABANDON_AFTER_MINUTES: int = 1440
    ABANDON_SWEEP_INTERVAL_SECONDS: int = 900
    SCHEDULER_ENABLED: bool = True

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")


settings = Settings()
