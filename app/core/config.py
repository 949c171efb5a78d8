# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key, used for Supabase Auth calls)
      - DATABASE_URL (Supabase Postgres connection string)
      - JWT_SECRET (signing secret for session tokens issued by this API)

    JWT_SECRET is declared optional here so that its absence surfaces as a
    ConfigurationError from the token issuer at startup, not as a generic
    settings validation error.
    """

    PROJECT_NAME: str = "Delivery Shop API"
    API_PREFIX: str = "/api"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # Session tokens (minted and verified by this backend)
    JWT_SECRET: str | None = None
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_IN_HOURS: int = 24

    # Used to build email redirect links (confirmation, password reset)
    FRONTEND_URL: str = "http://localhost:8080"

    # Profile reconciliation after signup
    PROFILE_GRACE_SECONDS: float = 1.0
    PROFILE_POLL_ATTEMPTS: int = 3
    PROFILE_POLL_DELAY_SECONDS: float = 0.5

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
