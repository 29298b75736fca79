"""Space endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.dependencies import get_sender, get_space_admin_cap
from questhub.config import get_settings
from questhub.database import get_session
from questhub.db.models import Capability
from questhub.events.service import commit_and_publish
from questhub.spaces import service
from questhub.spaces.schemas import (
    CreateSpaceRequest,
    CreateSpaceResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    SpacePointsResponse,
    SpaceResponse,
    UpdateSpaceRequest,
)

router = APIRouter(prefix="/api/v1/spaces", tags=["Spaces"])


@router.post("", response_model=CreateSpaceResponse, status_code=201)
async def create_space(
    body: CreateSpaceRequest,
    sender: str = Depends(get_sender),
    db: AsyncSession = Depends(get_session),
):
    """Spend one creation credit and create a space. Returns the space-admin capability once."""
    space, cap, token = await service.create_space(
        db,
        sender,
        body.name,
        body.description,
        body.image_url,
        body.website_url,
        body.twitter_url,
    )
    await commit_and_publish(db)
    return CreateSpaceResponse(
        space=SpaceResponse.model_validate(space),
        capability_id=cap.id,
        capability_token=token,
    )


@router.get("/{space_id}", response_model=SpaceResponse)
async def get_space(space_id: str, db: AsyncSession = Depends(get_session)):
    return SpaceResponse.model_validate(await service.get_space(db, space_id))


@router.patch("/{space_id}", response_model=SpaceResponse)
async def update_space(
    space_id: str,
    body: UpdateSpaceRequest,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    space = await service.update_space(db, cap, space_id, body.field, body.value)
    await commit_and_publish(db)
    return SpaceResponse.model_validate(space)


@router.post("/{space_id}/migrate", response_model=SpaceResponse)
async def migrate_space(
    space_id: str,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    space = await service.migrate_space(db, cap, space_id)
    await commit_and_publish(db)
    return SpaceResponse.model_validate(space)


@router.get("/{space_id}/points/{address}", response_model=SpacePointsResponse)
async def user_points(space_id: str, address: str, db: AsyncSession = Depends(get_session)):
    """Space points of an address. Unknown addresses read as 0."""
    await service.get_space(db, space_id)
    points = await service.user_points(db, space_id, address)
    return SpacePointsResponse(space_id=space_id, address=address, points=points)


@router.get("/{space_id}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    space_id: str,
    limit: int = Query(50, ge=1),
    db: AsyncSession = Depends(get_session),
):
    await service.get_space(db, space_id)
    limit = min(limit, get_settings().leaderboard_max)
    rows = await service.leaderboard(db, space_id, limit)
    return LeaderboardResponse(
        space_id=space_id,
        entries=[
            LeaderboardEntry(rank=i + 1, address=row.user_address, points=row.points)
            for i, row in enumerate(rows)
        ],
    )
