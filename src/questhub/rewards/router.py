"""Reward endpoints — lookup, ownership listing and transfer."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.dependencies import get_sender
from questhub.database import get_session
from questhub.events.service import commit_and_publish
from questhub.rewards import service
from questhub.rewards.schemas import RewardListResponse, RewardResponse, TransferRewardRequest

router = APIRouter(prefix="/api/v1/rewards", tags=["Rewards"])


@router.get("/owned/{owner}", response_model=RewardListResponse)
async def list_rewards(owner: str, db: AsyncSession = Depends(get_session)):
    rewards = await service.list_rewards(db, owner)
    return RewardListResponse(owner=owner, rewards=[RewardResponse.model_validate(r) for r in rewards])


@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward(reward_id: str, db: AsyncSession = Depends(get_session)):
    return RewardResponse.model_validate(await service.get_reward(db, reward_id))


@router.post("/{reward_id}/transfer", response_model=RewardResponse)
async def transfer_reward(
    reward_id: str,
    body: TransferRewardRequest,
    sender: str = Depends(get_sender),
    db: AsyncSession = Depends(get_session),
):
    """Hand a Transferable reward to another address. Soulbound rewards refuse."""
    reward = await service.transfer_reward(db, reward_id, sender, body.recipient)
    await commit_and_publish(db)
    return RewardResponse.model_validate(reward)
