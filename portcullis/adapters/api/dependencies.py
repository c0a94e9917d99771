"""FastAPI dependencies for admission control.

Dependencies cannot return a response, so a rejection is raised as
``PolicyRejectedError`` carrying the ready response; the registered handler
sends it back unchanged.
"""

from typing import Awaitable, Callable, Union

from fastapi import Depends, Request

from portcullis.core.container import SecurityServices
from portcullis.core.exceptions import PolicyRejectedError
from portcullis.domain.rate_limiting.entities import RateLimitResult
from portcullis.domain.rate_limiting.value_objects import IdentifierType

from .protection import client_ip_for, csrf_protection


def get_security_services(request: Request) -> SecurityServices:
    """Return the container the application lifespan attached to the app."""
    return request.app.state.security


async def require_csrf(
    request: Request, services: SecurityServices = Depends(get_security_services)
) -> None:
    response = csrf_protection(request, services.csrf)
    if response is not None:
        raise PolicyRejectedError(response)


def rate_limit(
    rule_name: str, identifier_type: Union[IdentifierType, str] = IdentifierType.IP
) -> Callable[..., Awaitable[RateLimitResult]]:
    """Return a FastAPI *dependency* enforcing a named rule.

    Args:
        rule_name: A rule registered in the rule table, e.g. ``REGISTRATION``.
        identifier_type: ``ip`` keys on the client address; ``user`` keys on
            ``request.state.user.id`` and falls back to the address for
            anonymous requests.
    """
    identifier_type = IdentifierType(identifier_type)

    async def _dependency(
        request: Request, services: SecurityServices = Depends(get_security_services)
    ) -> RateLimitResult:
        kind = identifier_type
        identifier = None
        if kind is IdentifierType.USER:
            user = getattr(request.state, "user", None)
            user_id = getattr(user, "id", None)
            if user_id is not None:
                identifier = str(user_id)
            else:
                kind = IdentifierType.IP
        if identifier is None:
            identifier = client_ip_for(request)

        decision = await services.rate_limiter.check_named_rule(rule_name, identifier, kind)
        if decision.limited:
            raise PolicyRejectedError(decision.response)
        return decision.result

    return _dependency
