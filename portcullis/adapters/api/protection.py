"""
Starlette adapters for the admission-control domain.

These functions translate between Starlette requests/responses and the
framework-free domain objects. They return ``None`` to let a request proceed
and a ready response to stop it, so they can be called from route handlers,
middleware or FastAPI dependencies alike.
"""

from typing import Awaitable, Callable, Optional

from starlette.requests import Request
from starlette.responses import Response
from structlog import get_logger

from portcullis.core.responses import (
    csrf_rejection_response,
    internal_error_response,
    rejection_response,
)
from portcullis.domain.security.client_ip import get_client_ip
from portcullis.domain.security.csrf import CSRFValidator
from portcullis.domain.security.dos_protection import (
    AdmissionDecision,
    DoSGate,
    RequestSnapshot,
)

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]


def client_ip_for(request: Request) -> str:
    peer = request.client.host if request.client else None
    return get_client_ip(request.headers, peer)


def snapshot_from_request(request: Request) -> RequestSnapshot:
    return RequestSnapshot(
        ip=client_ip_for(request),
        method=request.method,
        path=request.url.path,
        user_agent=request.headers.get("user-agent"),
        content_length=request.headers.get("content-length"),
        content_type=request.headers.get("content-type"),
    )


def rejection_message(decision: AdmissionDecision) -> str:
    """Generic client-facing text for a gate rejection."""
    if decision.status_code == 413:
        return "Request too large"
    if decision.reason == "too_many_concurrent_requests":
        return "Too many concurrent requests"
    if decision.rate_limit is not None:
        return "Rate limit exceeded"
    return "Request blocked"


async def protect(request: Request, gate: DoSGate) -> Optional[Response]:
    """Run the DoS gate; return a rejection response, or None to proceed."""
    decision = await gate.evaluate(snapshot_from_request(request))
    if decision.admitted:
        return None
    return rejection_response(
        decision.status_code, rejection_message(decision), headers=decision.headers or None
    )


async def with_dos_protection(request: Request, handler: Handler, gate: DoSGate) -> Response:
    """Run ``handler`` behind the DoS gate.

    A handler exception is logged and answered with a generic 500.
    """
    rejection = await protect(request, gate)
    if rejection is not None:
        return rejection
    try:
        return await handler(request)
    except Exception as exc:
        logger.error(
            "request_handler_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return internal_error_response()


def csrf_protection(request: Request, validator: CSRFValidator) -> Optional[Response]:
    """Validate Origin/Referer for state-changing requests.

    Returns:
        None to proceed, or a 403 response.
    """
    origin = request.headers.get("origin")
    referer = request.headers.get("referer")
    decision = validator.validate(request.method, origin, referer)
    if decision.allowed:
        return None

    logger.warning(
        "csrf_validation_failed",
        method=request.method.upper(),
        origin=origin,
        referer=referer,
        user_agent=request.headers.get("user-agent"),
        reason=decision.reason,
    )
    return csrf_rejection_response()
