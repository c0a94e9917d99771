from __future__ import annotations

"""
Global exception handlers for the FastAPI application.

Policy rejections raised from dependencies already carry their final
response; the handler returns it untouched. Anything unexpected becomes a
generic 500 so internals never leak to the client.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from structlog import get_logger

from portcullis.core.exceptions import PolicyRejectedError, PortcullisError
from portcullis.core.responses import internal_error_response

__all__ = [
    "policy_rejected_error_handler",
    "portcullis_error_handler",
    "unhandled_exception_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


async def policy_rejected_error_handler(request: Request, exc: PolicyRejectedError) -> Response:
    """Handles `PolicyRejectedError`, returning the response it carries.

    Args:
        request: The incoming `Request` object.
        exc: The `PolicyRejectedError` instance.

    Returns:
        The ready-made rejection response.
    """
    return exc.response


async def portcullis_error_handler(request: Request, exc: PortcullisError) -> JSONResponse:
    """Handles any other `PortcullisError` that escaped a route."""
    logger.error(
        "unhandled_portcullis_error",
        error=exc.code,
        message=exc.message,
        path=request.url.path,
    )
    return internal_error_response()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return internal_error_response()


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all custom exception handlers with the FastAPI application.

    More specific exceptions are registered before more general ones.

    Args:
        app: The `FastAPI` application instance.
    """
    app.add_exception_handler(PolicyRejectedError, policy_rejected_error_handler)
    app.add_exception_handler(PortcullisError, portcullis_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
