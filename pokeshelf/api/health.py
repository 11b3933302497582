"""
Health check endpoints.

Liveness and readiness probes. Readiness reports remote store
connectivity and the local sync queue; the service keeps answering from
its cache when the store is down, so only /ready reflects an outage.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from pokeshelf.api.dependencies import get_engine
from pokeshelf.sync.engine import SyncEngine

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    sync_status: str | None = None
    pending_operations: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not check dependencies."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 if the remote store is unreachable.
    """
    reachable = await engine.store.ping()
    if not reachable:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="ready" if reachable else "not ready",
        database="connected" if reachable else "disconnected",
        sync_status=engine.status.value,
        pending_operations=len(engine.cache.get_pending_operations()),
    )
