from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from portcullis.adapters.api.dependencies import get_security_services
from portcullis.core.container import SecurityServices

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    services: Dict[str, Any]
    dos_protection: Dict[str, Any]
    timestamp: datetime


async def check_store_health(services: SecurityServices) -> Dict[str, Any]:
    durable = services.rate_limiter.durable
    if durable is None:
        return {"status": "not_configured", "mode": "in_memory"}
    healthy = await durable.ping()
    return {"status": "healthy" if healthy else "unhealthy", "mode": "redis"}


@router.get("", response_model=HealthResponse)
async def health_check(
    request: Request, services: SecurityServices = Depends(get_security_services)
):
    """
    Report store connectivity and DoS gate statistics.

    An unreachable store degrades the status but never fails the check; the
    service keeps answering from its in-process fallbacks.
    """
    settings = request.app.state.settings
    store_health = await check_store_health(services)
    overall_status = "degraded" if store_health["status"] == "unhealthy" else "ok"

    return HealthResponse(
        status=overall_status,
        env=settings.APP_ENV,
        version=settings.VERSION,
        services={"store": store_health},
        dos_protection=services.dos_gate.get_stats(),
        timestamp=datetime.now(timezone.utc),
    )
