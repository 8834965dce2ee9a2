"""
Application Configuration
Location data collection service
"""
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from pathlib import Path

# Get the directory where config.py is located
CONFIG_DIR = Path(__file__).resolve().parent
BACKEND_DIR = CONFIG_DIR.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Location Data Collector"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Key-value store - supports DATABASE_URL, Vercel POSTGRES_URL, and Neon
    DATABASE_URL: str = "sqlite+aiosqlite:///./location_data.db"
    POSTGRES_URL: Optional[str] = None  # Vercel Postgres
    NEON_DATABASE_URL: Optional[str] = None  # Neon Postgres
    DATABASE_ECHO: bool = False

    @model_validator(mode='after')
    def configure_database_url(self):
        """Use cloud database URL if available (Neon or Vercel Postgres)"""
        # Priority: NEON_DATABASE_URL > POSTGRES_URL > DATABASE_URL
        url = self.NEON_DATABASE_URL or self.POSTGRES_URL
        if url:
            # Convert postgres:// to postgresql+asyncpg://
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            self.DATABASE_URL = url
        return self

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # IP-based fallback location
    IP_GEOLOCATION_URL: str = "https://ipapi.co/json/"
    IP_GEOLOCATION_TIMEOUT_SECONDS: float = 10.0
    IP_FALLBACK_ACCURACY_METERS: float = 10000

    # Location history
    LOCATION_HISTORY_MAX_ENTRIES: int = 1000

    # Consent records
    USER_AGENT: str = "LocationDataCollector/1.0"
    CLIENT_IP_PLACEHOLDER: str = "xxx.xxx.xxx.xxx"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle both JSON array and comma-separated formats
            if v.startswith("["):
                import json
                return json.loads(v)
            return [origin.strip() for origin in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
