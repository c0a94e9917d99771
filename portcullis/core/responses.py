"""Ready-made rejection responses.

Every policy rejection leaves the process through one of these builders so the
status codes, header names and JSON bodies stay stable for clients that branch
on them. Bodies are deliberately generic: they never say which heuristic or
limit fired.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Optional

from starlette import status
from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from portcullis.domain.rate_limiting.entities import RateLimitResult

CSRF_ERROR_CODE = "CSRF_VALIDATION_FAILED"
CSRF_ERROR_MESSAGE = "CSRF validation failed. Request rejected for security reasons."

IP_RATE_LIMIT_MESSAGE = "Too many requests from your IP address. Please try again later."
USER_RATE_LIMIT_MESSAGE = "Too many requests from your account. Please try again later."


def format_reset_time(reset_at_ms: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC timestamp (``...Z``)."""
    moment = datetime.fromtimestamp(reset_at_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rate_limit_headers(result: "RateLimitResult", now_ms: int) -> Dict[str, str]:
    return {
        "Retry-After": str(result.retry_after_seconds(now_ms)),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": format_reset_time(result.reset_at_ms),
    }


def rate_limit_response(
    result: "RateLimitResult", now_ms: int, message: str = "Too many requests"
) -> JSONResponse:
    """429 with retry metadata for a denied rate limit check."""
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": message},
        headers=rate_limit_headers(result, now_ms),
    )


def csrf_rejection_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": CSRF_ERROR_MESSAGE, "code": CSRF_ERROR_CODE},
    )


def rejection_response(
    status_code: int, message: str, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
