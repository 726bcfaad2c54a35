"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. Secrets stay out of source code: the .env file is
gitignored.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from cashbook.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Cashbook API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to verify JWT bearer tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Cashbook API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    # SQLite for local use; point at PostgreSQL (asyncpg) in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/cashbook.db"

    # Seconds between reconnection attempts while the store is down
    DB_RECONNECT_DELAY_SECONDS: float = 5.0

    # Create missing tables whenever the store connects (use migrations in production)
    DB_CREATE_TABLES: bool = True

    # --- Authentication ---
    # REQUIRED: No default, tokens are signed by the login service with this key
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:8081", "http://localhost:19006"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
