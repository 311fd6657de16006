"""
Health check endpoints.

- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (is storage configured?)

The readiness check does not call S3; it only reports whether uploads can
be attempted at all.
"""

import logging

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


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
)
async def health_check() -> HealthResponse:
    """Liveness check. Does not look at configuration or S3."""
    return HealthResponse(status="ok", version=__version__)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    """
    Readiness check - can uploads be attempted?

    Returns 503 while any required storage setting is missing, which tells
    load balancers not to route upload traffic here yet.
    """
    missing_fields = settings.validate_required_fields()

    if missing_fields:
        check = ReadinessCheck(
            name="storage_configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        )
        logger.warning(
            "Readiness check failed",
            extra={"missing_fields": missing_fields}
        )
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        check = ReadinessCheck(name="storage_configuration", status="ok")

    return ReadinessResponse(
        status="not_ready" if missing_fields else "ready",
        version=__version__,
        checks=[check],
    )
