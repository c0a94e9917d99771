"""Credential sign-in endpoint.

The route is a thin shell over ``AuthGuard``: CSRF is enforced as a
dependency, and every failure other than rate limiting returns the same 401
body so responses cannot be used to probe which emails exist.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from portcullis.adapters.api.dependencies import get_security_services, require_csrf
from portcullis.adapters.api.protection import client_ip_for
from portcullis.core.container import SecurityServices
from portcullis.domain.services.authentication.auth_guard import AuthStatus

router = APIRouter()

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=1024)


class LoginResponse(BaseModel):
    user_id: str


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    dependencies=[Depends(require_csrf)],
    responses={401: {"description": "Invalid credentials"}, 429: {"description": "Rate limited"}},
)
async def login(
    payload: LoginRequest,
    request: Request,
    services: SecurityServices = Depends(get_security_services),
):
    outcome = await services.auth_guard.authenticate(
        payload.email, payload.password, client_ip_for(request)
    )
    if outcome.status is AuthStatus.RATE_LIMITED:
        return outcome.response
    if outcome.status is AuthStatus.AUTHENTICATED:
        return LoginResponse(user_id=outcome.user_id)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": INVALID_CREDENTIALS_MESSAGE},
    )
