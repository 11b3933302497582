"""
Profile API endpoints.

Profiles are a plain picker: no authentication, no edits.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from pokeshelf.api.dependencies import get_engine
from pokeshelf.api.schemas import ProfileResponse
from pokeshelf.sync.engine import SyncEngine

router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileCreateRequest(BaseModel):
    """Request model for creating a profile."""

    name: str = Field(..., min_length=1, max_length=100, examples=["Ash"])
    avatar: str | None = Field(default=None, description="Optional avatar reference")


@router.get("", response_model=list[ProfileResponse])
async def list_profiles(
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> list[ProfileResponse]:
    """
    List all profiles.

    Served from the remote store when reachable, otherwise from the cache.
    """
    profiles = await engine.sync_profiles_from_server()
    return [ProfileResponse.from_model(p) for p in profiles]


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: ProfileCreateRequest,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> ProfileResponse:
    """Create a profile. Fails with 503 while offline."""
    profile = await engine.create_profile(request.name, request.avatar)
    return ProfileResponse.from_model(profile)
