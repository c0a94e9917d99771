"""Main application settings and configuration management.

This module composes the settings from the different modules (app, redis,
security) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.

Environment Support:
- Development: Uses .env, loopback origins allowed by default
- Test: Uses .env.test
- Staging: Uses .env.staging
- Production: Uses .env.production, ALLOWED_ORIGINS required
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .redis import RedisSettings
from .security import SecuritySettings

logger = logging.getLogger(__name__)
logging.getLogger("passlib").setLevel(logging.ERROR)


class Settings(AppSettings, RedisSettings, SecuritySettings):
    """The main settings class that aggregates all application configurations.

    Security Note:
        - Validate environment variables in production to prevent
          misconfiguration (OWASP A05:2021 - Security Misconfiguration).
    Usage:
        - Access settings via the singleton instance `settings`, or build a
          fresh instance and pass it to ``create_application`` in tests.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    @property
    def dos_enabled(self) -> bool:
        return self.dos_protection_enabled(self.APP_ENV)

    def log_summary(self) -> None:
        """Log the resolved profile without exposing connection strings."""
        logger.info(f"Application running in {self.APP_ENV} environment")
        logger.info(f"Durable store: {'redis' if self.REDIS_URL else 'in-memory only'}")
        logger.info(f"DoS protection enabled: {self.dos_enabled}")


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }

    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        return Settings(_env_file=env_file)
    if Path(".env").exists():
        logger.info(f"Loading environment configuration from .env (environment: {env})")
    else:
        logger.debug(f"No .env file found, using environment variables only (environment: {env})")
    return Settings()


# Singleton instance of the settings to be used across the application.
settings = create_settings()
