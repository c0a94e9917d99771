"""Security services container.

Builds every admission-control subsystem from settings once per process and
hands them out through ``app.state.security``. Nothing here is a module-level
singleton, so tests can build as many independent containers as they need.
"""

from dataclasses import dataclass
from typing import Optional

from passlib.context import CryptContext
from redis.asyncio import Redis
from structlog import get_logger

from portcullis.core.clock import Clock, system_clock
from portcullis.core.config.settings import Settings
from portcullis.core.rate_limiting.config import RateLimitingConfig
from portcullis.domain.interfaces.repositories import ICredentialsRepository
from portcullis.domain.lockout.entities import LockoutPolicy
from portcullis.domain.lockout.services import LockoutTracker
from portcullis.domain.rate_limiting.services import RateLimiter
from portcullis.domain.security.csrf import CSRFValidator
from portcullis.domain.security.dos_protection import DoSGate, DoSProtectionConfig
from portcullis.domain.services.authentication.auth_guard import AuthGuard
from portcullis.infrastructure.repositories import (
    InMemoryCredentialsRepository,
    InMemoryFixedWindowRepository,
    InMemoryLockoutRepository,
    RedisLockoutRepository,
    RedisSlidingWindowRepository,
)
from portcullis.utils.security import create_password_context

logger = get_logger(__name__)


@dataclass
class SecurityServices:
    rate_limiter: RateLimiter
    lockout: LockoutTracker
    csrf: CSRFValidator
    dos_gate: DoSGate
    auth_guard: AuthGuard
    pwd_context: CryptContext

    def start(self) -> None:
        self.rate_limiter.start()
        self.lockout.start()
        self.dos_gate.start()

    async def stop(self) -> None:
        await self.dos_gate.stop()
        await self.lockout.stop()
        await self.rate_limiter.stop()


def dos_config_from_settings(settings: Settings) -> DoSProtectionConfig:
    return DoSProtectionConfig(
        enabled=settings.dos_enabled,
        max_request_size=settings.MAX_REQUEST_SIZE,
        max_concurrent_requests=settings.MAX_CONCURRENT_REQUESTS,
        request_timeout_ms=settings.REQUEST_TIMEOUT_MS,
        anomaly_detection=settings.ANOMALY_DETECTION_ENABLED,
        suspicious_ip_ttl_ms=settings.SUSPICIOUS_IP_TTL_MS,
        frequency_threshold=settings.ANOMALY_FREQUENCY_THRESHOLD,
        sweep_interval_seconds=settings.DOS_SWEEP_INTERVAL_SECONDS,
    )


def build_security_services(
    settings: Settings,
    rate_limiting_config: RateLimitingConfig,
    redis_client: Optional[Redis] = None,
    credentials: Optional[ICredentialsRepository] = None,
    clock: Clock = system_clock,
) -> SecurityServices:
    """Wire the admission-control subsystems.

    Args:
        settings: Application settings.
        rate_limiting_config: Rule overrides and purge schedule.
        redis_client: Shared durable store client; None for in-memory mode.
        credentials: Credential lookup for the sign-in guard.
        clock: Millisecond time source shared by every subsystem.

    Raises:
        ConfigurationError: If rate limit overrides are invalid.
    """
    timeout = settings.redis_timeout_seconds
    purge_enabled = rate_limiting_config.purge_active(settings.APP_ENV)
    purge_interval = rate_limiting_config.purge_interval_seconds

    rate_limiter = RateLimiter(
        fallback=InMemoryFixedWindowRepository(),
        durable=(
            RedisSlidingWindowRepository(redis_client, timeout_seconds=timeout)
            if redis_client is not None
            else None
        ),
        rules=rate_limiting_config.build_rule_table(),
        clock=clock,
        purge_interval_seconds=purge_interval,
        purge_enabled=purge_enabled,
    )
    lockout = LockoutTracker(
        fallback=InMemoryLockoutRepository(),
        repository=(
            RedisLockoutRepository(redis_client, timeout_seconds=timeout)
            if redis_client is not None
            else None
        ),
        policy=LockoutPolicy(
            max_failed_attempts=settings.LOCKOUT_MAX_FAILED_ATTEMPTS,
            lockout_duration_ms=settings.LOCKOUT_DURATION_MS,
            failure_window_ms=settings.LOCKOUT_FAILURE_WINDOW_MS,
        ),
        clock=clock,
        purge_interval_seconds=purge_interval,
        purge_enabled=purge_enabled,
    )
    pwd_context = create_password_context(settings.BCRYPT_WORK_FACTOR)

    services = SecurityServices(
        rate_limiter=rate_limiter,
        lockout=lockout,
        csrf=CSRFValidator(settings.ALLOWED_ORIGINS or []),
        dos_gate=DoSGate(dos_config_from_settings(settings), rate_limiter, clock=clock),
        auth_guard=AuthGuard(
            credentials=credentials or InMemoryCredentialsRepository(),
            lockout=lockout,
            rate_limiter=rate_limiter,
            pwd_context=pwd_context,
        ),
        pwd_context=pwd_context,
    )
    logger.info(
        "security_services_built",
        durable_store=redis_client is not None,
        dos_enabled=services.dos_gate.enabled,
        purge_enabled=purge_enabled,
        rules=len(rate_limiter.rules),
    )
    return services
