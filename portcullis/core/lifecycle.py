"""Application lifecycle management.

This module handles application startup and shutdown events: it connects the
durable store, builds the security services, starts their maintenance loops
and tears all of it down again on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from portcullis.core.clock import Clock, system_clock
from portcullis.core.config.settings import Settings
from portcullis.core.container import build_security_services
from portcullis.core.logging import logger
from portcullis.core.rate_limiting.config import RateLimitingConfig, load_rate_limiting_config
from portcullis.domain.interfaces.repositories import ICredentialsRepository
from portcullis.infrastructure.redis import close_redis_client, create_redis_client


def create_lifespan_manager(
    settings: Settings,
    rate_limiting_config: Optional[RateLimitingConfig] = None,
    credentials: Optional[ICredentialsRepository] = None,
    clock: Clock = system_clock,
):
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager that handles startup and shutdown events.

        Args:
            app (FastAPI): The FastAPI application instance

        Raises:
            ConfigurationError: If rate limit overrides are invalid
        """
        # Startup
        redis_client = create_redis_client(settings)
        try:
            services = build_security_services(
                settings,
                rate_limiting_config or load_rate_limiting_config(),
                redis_client,
                credentials=credentials,
                clock=clock,
            )
        except Exception:
            await close_redis_client(redis_client)
            raise

        app.state.security = services
        services.start()
        logger.info("application_startup", env=settings.APP_ENV, version=settings.VERSION)

        try:
            yield
        finally:
            # Shutdown
            await services.stop()
            await close_redis_client(redis_client)
            logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
