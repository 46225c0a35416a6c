"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from wellnesstree.application.ledger_service import get_credit_store
from wellnesstree.infrastructure.config import settings
from wellnesstree.infrastructure.courier_client import get_courier_registry

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    credit_store: str
    couriers: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="wellnesstree-api",
        version=settings.api_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Report the wired credit store and enabled couriers."""
    store = get_credit_store()
    return ReadinessResponse(
        status="ready",
        credit_store=type(store).__name__,
        couriers=[c.id for c in get_courier_registry().list_couriers()],
    )
