"""Pydantic models for quest endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from questhub.db.models import QuestState
from questhub.quests.service import QuestField


class CreateQuestRequest(BaseModel):
    points_amount: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    call_to_action_url: str = ""
    target_program_id: str = ""
    module_name: str = ""
    function_name: str = ""
    arguments: list[str] = []
    requires_start: bool = False


class QuestResponse(BaseModel):
    id: str
    journey_id: str
    points_amount: int
    name: str
    description: str
    call_to_action_url: str
    target_program_id: str
    module_name: str
    function_name: str
    arguments: list[str]
    requires_start: bool
    total_completed: int
    created_at: datetime

    model_config = {"from_attributes": True}


class QuestListResponse(BaseModel):
    quests: list[QuestResponse]


class UpdateQuestRequest(BaseModel):
    field: QuestField
    value: Any


class StartQuestRequest(BaseModel):
    """``payment`` must equal the hub's quest-start fee exactly."""

    payment: int = Field(..., ge=0)


class CompleteQuestRequest(BaseModel):
    user: str = Field(..., min_length=1, max_length=128)


class QuestStateResponse(BaseModel):
    quest_id: str
    address: str
    state: QuestState
