"""
Sync API endpoints.

Lets the client trigger a replay of queued changes (e.g. on reconnect)
or a full sync for a profile, and read the coarse sync status.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pokeshelf.api.dependencies import get_engine
from pokeshelf.api.schemas import ReplayResponse
from pokeshelf.sync.engine import SyncEngine

router = APIRouter(tags=["sync"])


class SyncStatusResponse(BaseModel):
    """Current sync state."""

    status: str
    online: bool
    pending_operations: int
    last_sync: float | None = None


@router.get("/sync/status", response_model=SyncStatusResponse)
async def get_sync_status(
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> SyncStatusResponse:
    """Report sync status, connectivity and queue length."""
    return SyncStatusResponse(
        status=engine.status.value,
        online=engine.connectivity.is_online(),
        pending_operations=len(engine.cache.get_pending_operations()),
        last_sync=engine.cache.get_last_sync_time(),
    )


@router.post("/sync/pending", response_model=ReplayResponse)
async def replay_pending(
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> ReplayResponse:
    """Replay queued changes against the remote store."""
    await engine.connectivity.refresh()
    report = await engine.sync_pending_operations()
    return ReplayResponse.from_report(report, engine.status.value)


@router.post("/profiles/{profile_id}/sync", response_model=ReplayResponse)
async def full_sync(
    profile_id: str,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> ReplayResponse:
    """Replay queued changes, then pull fresh profiles and collection."""
    await engine.connectivity.refresh()
    report = await engine.full_sync(profile_id)
    return ReplayResponse.from_report(report, engine.status.value)
