"""Pydantic models for reward endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RewardResponse(BaseModel):
    id: str
    variant: str
    owner: str
    claimer: str
    space_id: str
    journey_id: str
    name: str
    description: str
    image_url: str
    minted_at: datetime

    model_config = {"from_attributes": True}


class RewardListResponse(BaseModel):
    owner: str
    rewards: list[RewardResponse]


class TransferRewardRequest(BaseModel):
    recipient: str = Field(..., min_length=1, max_length=128)
