"""
Admission-control settings: DoS gate, account lockout and password hashing.
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

MIB = 1024 * 1024


class SecuritySettings(BaseSettings):
    """
    Defines limits for the DoS protection gate and the account lockout tracker.

    Security Note:
        - DOS_PROTECTION_ENABLED defaults to on only in production; local
          development and tests would otherwise trip the automation
          user-agent heuristic (``python``, ``curl``) on every request.
        - Lockout thresholds apply per identity (normally the email) and are
          independent of the per-IP LOGIN rate limit.
    """
    # DoS gate
    DOS_PROTECTION_ENABLED: Optional[bool] = None
    MAX_REQUEST_SIZE: int = Field(default=10 * MIB, ge=1)
    MAX_CONCURRENT_REQUESTS: int = Field(default=50, ge=1)
    REQUEST_TIMEOUT_MS: int = Field(default=30_000, ge=1)
    ANOMALY_DETECTION_ENABLED: bool = True
    ANOMALY_FREQUENCY_THRESHOLD: int = Field(default=20, ge=1)
    SUSPICIOUS_IP_TTL_MS: int = Field(default=30 * 60 * 1000, ge=1)
    DOS_SWEEP_INTERVAL_SECONDS: int = Field(default=60, ge=1)

    # Account lockout
    LOCKOUT_MAX_FAILED_ATTEMPTS: int = Field(default=5, ge=1)
    LOCKOUT_DURATION_MS: int = Field(default=30 * 60 * 1000, ge=1)
    LOCKOUT_FAILURE_WINDOW_MS: int = Field(default=15 * 60 * 1000, ge=1)

    # Password hashing
    BCRYPT_WORK_FACTOR: int = Field(default=12, ge=4, le=31)

    def dos_protection_enabled(self, app_env: str) -> bool:
        """Resolve the DoS switch, defaulting to the production profile."""
        if self.DOS_PROTECTION_ENABLED is None:
            return app_env == "production"
        return self.DOS_PROTECTION_ENABLED
