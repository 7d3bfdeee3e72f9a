from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Every value has a development default so the API starts with no .env file.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5174

    # Only this origin may call the API with cookies
    CORS_ORIGIN: str = "http://localhost:5173"

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./messages.db"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Posting rules
    POST_INTERVAL_MS: int = 5000
    MAX_BODY_BYTES: int = 10 * 1024
    DEFAULT_NICKNAME: str = "小纸条"

    # Identity cookie
    COOKIE_NAME: str = "uid"
    COOKIE_MAX_AGE_SECONDS: int = 365 * 24 * 3600


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()
