"""Pydantic models for journey endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from questhub.journeys.service import JourneyField


class CreateJourneyRequest(BaseModel):
    """``payment`` must equal the hub's journey-creation fee exactly."""

    payment: int = Field(..., ge=0)
    reward_type: str | int
    reward_image_url: str = ""
    reward_required_points: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    start_time: int = Field(..., ge=0)
    end_time: int = Field(..., ge=0)


class JourneyResponse(BaseModel):
    id: str
    space_id: str
    reward_type: str
    reward_required_points: int
    reward_image_url: str
    name: str
    description: str
    start_time: int
    end_time: int
    total_completed: int
    created_at: datetime

    model_config = {"from_attributes": True}


class JourneyListResponse(BaseModel):
    journeys: list[JourneyResponse]


class UpdateJourneyRequest(BaseModel):
    field: JourneyField
    value: Any


class JourneyProgressResponse(BaseModel):
    journey_id: str
    address: str
    points: int
    completed_quests: int
    completed: bool
