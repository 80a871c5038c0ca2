"""
Health check endpoints.

Health checks are essential for:
- Load balancers to know if the service is alive
- Monitoring systems to track availability
- Deployment systems to verify rollouts

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we reach the record store?)
"""

import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import DocumentStoreDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """
    Liveness check - is the process alive?

    This endpoint should be very fast and not check external dependencies.
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"mock_mode": settings.store_mock_mode},
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle traffic. Checks the record store.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
def readiness_check(
    settings: SettingsDep,
    store: DocumentStoreDep,
    response: Response,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Checks that configuration is complete and that the record store
    answers a trivial query. Returns 503 if any check fails, which tells
    load balancers not to route traffic here.
    """
    checks: list[ReadinessCheck] = []

    # Check configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        ))
    else:
        checks.append(ReadinessCheck(
            name="configuration",
            status="ok"
        ))

    # Check the record store
    try:
        store.ping()
        checks.append(ReadinessCheck(
            name="record_store",
            status="ok",
            error="mock mode" if settings.store_mock_mode else None,
        ))
    except Exception as e:
        logger.error("Record store health check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(
            name="record_store",
            status="error",
            error=str(e)
        ))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
