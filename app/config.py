"""Configuration settings for Audio Reviews."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./audio_reviews.db")
    DATABASE_SSL: bool = _env_flag("DATABASE_SSL")
    DATABASE_SSL_VERIFY: bool = _env_flag("DATABASE_SSL_VERIFY")

    # Standalone server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))

    # Function adapter
    FUNCTION_BASE_PATH: str = os.getenv("FUNCTION_BASE_PATH", "/functions/api")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = _env_flag("DEBUG")

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.DATABASE_SSL_VERIFY and not self.DATABASE_SSL:
            errors.append("DATABASE_SSL_VERIFY is set but DATABASE_SSL is off - certificate will not be checked")
        if self.DATABASE_URL.startswith("sqlite") and self.APP_ENV == "production":
            errors.append("Using SQLite in production - concurrent writers will serialize on the database file")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
