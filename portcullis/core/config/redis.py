"""
Redis durable store settings.
"""
import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RedisSettings(BaseSettings):
    """
    Defines settings for the durable counter store.

    When REDIS_URL is absent the process runs in in-memory-only mode: rate
    limits and lockouts are tracked per process and are not shared between
    instances.

    Security Note:
        - Use ``rediss://`` URLs with credentials in production
          (OWASP A02:2021 - Cryptographic Failures).
    Performance Note:
        - REDIS_TIMEOUT_MS bounds every store round trip. A slow store must
          never hold up the request pipeline; on timeout the limiter falls
          back to its in-process counters for that call.
    """
    REDIS_URL: Optional[str] = None
    REDIS_TIMEOUT_MS: int = Field(default=250, ge=1, le=10_000)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def normalize_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty string as "not configured"."""
        if v is None:
            return None
        v = str(v).strip()
        if not v:
            return None
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must use the redis://, rediss:// or unix:// scheme")
        logger.debug("REDIS_URL configured (credentials masked).")
        return v

    @property
    def redis_timeout_seconds(self) -> float:
        return self.REDIS_TIMEOUT_MS / 1000
