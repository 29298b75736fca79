"""Journey endpoints, nested under their space."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.dependencies import get_sender, get_space_admin_cap
from questhub.database import get_session
from questhub.db.models import Capability
from questhub.events.service import commit_and_publish
from questhub.journeys import service
from questhub.journeys.schemas import (
    CreateJourneyRequest,
    JourneyListResponse,
    JourneyProgressResponse,
    JourneyResponse,
    UpdateJourneyRequest,
)
from questhub.rewards.schemas import RewardResponse
from questhub.rewards.service import complete_journey
from questhub.spaces.service import get_space

router = APIRouter(prefix="/api/v1/spaces/{space_id}/journeys", tags=["Journeys"])


@router.post("", response_model=JourneyResponse, status_code=201)
async def create_journey(
    space_id: str,
    body: CreateJourneyRequest,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    """Create a journey, paying the journey-creation fee into the treasury."""
    journey = await service.create_journey(
        db,
        body.payment,
        cap,
        space_id,
        body.reward_type,
        body.reward_image_url,
        body.reward_required_points,
        body.name,
        body.description,
        body.start_time,
        body.end_time,
    )
    await commit_and_publish(db)
    return JourneyResponse.model_validate(journey)


@router.get("", response_model=JourneyListResponse)
async def list_journeys(space_id: str, db: AsyncSession = Depends(get_session)):
    await get_space(db, space_id)
    journeys = await service.list_journeys(db, space_id)
    return JourneyListResponse(journeys=[JourneyResponse.model_validate(j) for j in journeys])


@router.get("/{journey_id}", response_model=JourneyResponse)
async def get_journey(space_id: str, journey_id: str, db: AsyncSession = Depends(get_session)):
    return JourneyResponse.model_validate(await service.get_journey(db, space_id, journey_id))


@router.patch("/{journey_id}", response_model=JourneyResponse)
async def update_journey(
    space_id: str,
    journey_id: str,
    body: UpdateJourneyRequest,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    journey = await service.update_journey(db, cap, space_id, journey_id, body.field, body.value)
    await commit_and_publish(db)
    return JourneyResponse.model_validate(journey)


@router.delete("/{journey_id}", status_code=204)
async def remove_journey(
    space_id: str,
    journey_id: str,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Remove a journey. Its quests must have been removed first."""
    await service.remove_journey(db, cap, space_id, journey_id)
    await commit_and_publish(db)


@router.get("/{journey_id}/progress/{address}", response_model=JourneyProgressResponse)
async def user_progress(
    space_id: str,
    journey_id: str,
    address: str,
    db: AsyncSession = Depends(get_session),
):
    journey = await service.get_journey(db, space_id, journey_id)
    progress = await service.user_progress(db, journey.id, address)
    return JourneyProgressResponse(journey_id=journey.id, address=address, **progress)


@router.post("/{journey_id}/complete", response_model=RewardResponse, status_code=201)
async def claim_reward(
    space_id: str,
    journey_id: str,
    sender: str = Depends(get_sender),
    db: AsyncSession = Depends(get_session),
):
    """Claim the journey reward once the caller's journey points reach the threshold."""
    reward = await complete_journey(db, space_id, journey_id, sender)
    await commit_and_publish(db)
    return RewardResponse.model_validate(reward)
