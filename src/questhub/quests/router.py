"""Quest endpoints, nested under their journey."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.dependencies import get_clock, get_sender, get_space_admin_cap, get_verifier_cap
from questhub.database import get_session
from questhub.db.models import Capability, QuestState
from questhub.events.service import commit_and_publish
from questhub.journeys.service import get_journey
from questhub.quests import service
from questhub.quests.schemas import (
    CompleteQuestRequest,
    CreateQuestRequest,
    QuestListResponse,
    QuestResponse,
    QuestStateResponse,
    StartQuestRequest,
    UpdateQuestRequest,
)

router = APIRouter(prefix="/api/v1/spaces/{space_id}/journeys/{journey_id}/quests", tags=["Quests"])


@router.post("", response_model=QuestResponse, status_code=201)
async def create_quest(
    space_id: str,
    journey_id: str,
    body: CreateQuestRequest,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    quest = await service.create_quest(
        db,
        cap,
        space_id,
        journey_id,
        body.points_amount,
        body.name,
        body.description,
        body.call_to_action_url,
        body.target_program_id,
        body.module_name,
        body.function_name,
        body.arguments,
        requires_start=body.requires_start,
    )
    await commit_and_publish(db)
    return QuestResponse.model_validate(quest)


@router.get("", response_model=QuestListResponse)
async def list_quests(space_id: str, journey_id: str, db: AsyncSession = Depends(get_session)):
    journey = await get_journey(db, space_id, journey_id)
    quests = await service.list_quests(db, journey.id)
    return QuestListResponse(quests=[QuestResponse.model_validate(q) for q in quests])


@router.get("/{quest_id}", response_model=QuestResponse)
async def get_quest(
    space_id: str,
    journey_id: str,
    quest_id: str,
    db: AsyncSession = Depends(get_session),
):
    journey = await get_journey(db, space_id, journey_id)
    return QuestResponse.model_validate(await service.get_quest(db, journey.id, quest_id))


@router.patch("/{quest_id}", response_model=QuestResponse)
async def update_quest(
    space_id: str,
    journey_id: str,
    quest_id: str,
    body: UpdateQuestRequest,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    quest = await service.update_quest(db, cap, space_id, journey_id, quest_id, body.field, body.value)
    await commit_and_publish(db)
    return QuestResponse.model_validate(quest)


@router.delete("/{quest_id}", status_code=204)
async def remove_quest(
    space_id: str,
    journey_id: str,
    quest_id: str,
    cap: Capability = Depends(get_space_admin_cap),
    db: AsyncSession = Depends(get_session),
) -> None:
    await service.remove_quest(db, cap, space_id, journey_id, quest_id)
    await commit_and_publish(db)


@router.post("/{quest_id}/start", response_model=QuestStateResponse)
async def start_quest(
    space_id: str,
    journey_id: str,
    quest_id: str,
    body: StartQuestRequest,
    sender: str = Depends(get_sender),
    clock: Callable[[], int] = Depends(get_clock),
    db: AsyncSession = Depends(get_session),
):
    """Start a quest, paying the quest-start fee to the verifier."""
    progress = await service.start_quest(db, body.payment, space_id, journey_id, quest_id, sender, clock())
    await commit_and_publish(db)
    return QuestStateResponse(quest_id=quest_id, address=sender, state=progress.state)


@router.post("/{quest_id}/complete", response_model=QuestStateResponse)
async def complete_quest(
    space_id: str,
    journey_id: str,
    quest_id: str,
    body: CompleteQuestRequest,
    cap: Capability = Depends(get_verifier_cap),
    clock: Callable[[], int] = Depends(get_clock),
    db: AsyncSession = Depends(get_session),
):
    """Verifier attestation that ``user`` completed the quest."""
    await service.complete_quest(db, cap, space_id, journey_id, quest_id, body.user, clock())
    await commit_and_publish(db)
    return QuestStateResponse(quest_id=quest_id, address=body.user, state=QuestState.COMPLETED)


@router.get("/{quest_id}/state/{address}", response_model=QuestStateResponse)
async def user_state(
    space_id: str,
    journey_id: str,
    quest_id: str,
    address: str,
    db: AsyncSession = Depends(get_session),
):
    journey = await get_journey(db, space_id, journey_id)
    quest = await service.get_quest(db, journey.id, quest_id)
    state = await service.user_state(db, quest.id, address)
    return QuestStateResponse(quest_id=quest.id, address=address, state=state)
