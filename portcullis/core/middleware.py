"""Middleware configuration for the FastAPI application.

This module registers CORS and the DoS protection gate. The gate runs as the
outermost HTTP middleware so rejected requests never reach routing.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from portcullis.adapters.api.protection import with_dos_protection
from portcullis.core.config.settings import Settings


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure all middleware for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance
        settings (Settings): Resolved settings; supplies the origin allow-list
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(dos_protection_middleware)


async def dos_protection_middleware(request: Request, call_next):
    """Apply the DoS gate to every request.

    Requests arriving before the lifespan has attached the security services
    pass straight through.
    """
    services = getattr(request.app.state, "security", None)
    if services is None:
        return await call_next(request)
    return await with_dos_protection(request, call_next, services.dos_gate)
