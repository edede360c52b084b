"""
Health check endpoints.

Liveness plus a readiness probe that reports which oracle providers can
currently be requested.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from decknexus.services.oracle import available_providers

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    providers: list[str] | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check dependencies.
    """
    return HealthResponse(status="healthy", providers=available_providers())
