"""Application factory for creating and configuring the FastAPI application.

This module provides a factory function to create a properly configured FastAPI application
with all necessary middleware, exception handlers, and routers registered.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from portcullis.adapters.api.v1 import api_router
from portcullis.core.clock import Clock, system_clock
from portcullis.core.config.settings import Settings
from portcullis.core.handlers import register_exception_handlers
from portcullis.core.lifecycle import create_lifespan_manager
from portcullis.core.middleware import configure_middleware
from portcullis.core.rate_limiting.config import RateLimitingConfig
from portcullis.domain.interfaces.repositories import ICredentialsRepository


def create_application(
    settings: Optional[Settings] = None,
    rate_limiting_config: Optional[RateLimitingConfig] = None,
    credentials: Optional[ICredentialsRepository] = None,
    clock: Clock = system_clock,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to run with; the process-wide settings by default.
        rate_limiting_config: Rule overrides; read from the environment at
            startup by default.
        credentials: Credential store for the sign-in route.
        clock: Millisecond time source for every security subsystem.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    if settings is None:
        from portcullis.core.config.settings import settings as process_settings

        settings = process_settings

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Request admission control: rate limiting, CSRF, lockout and DoS protection.",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=create_lifespan_manager(
            settings,
            rate_limiting_config=rate_limiting_config,
            credentials=credentials,
            clock=clock,
        ),
        default_response_class=JSONResponse,
    )
    app.state.settings = settings

    # Configure middleware
    configure_middleware(app, settings)

    # Register exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(api_router, prefix="/api/v1")

    return app
