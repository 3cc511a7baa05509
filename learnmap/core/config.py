"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Learnmap"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENV: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./learnmap.db"
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str | None = None
    LOG_JSON: bool | None = None

    # Identity used when the request carries no X-User-Id header
    DEFAULT_USER_ID: str = "local-dev-user"

    # Roadmaps
    DEFAULT_DAILY_FOCUS_TIME: int = 60  # minutes
    INTRO_NODE_TITLE: str = "Intro"

    # Nodes
    BATCH_ATOMIC: bool = False
    NODE_DELETE_POLICY: Literal["reparent", "cascade", "reject"] = "reparent"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
