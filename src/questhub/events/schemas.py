"""Pydantic models for the event feed."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EventResponse(BaseModel):
    id: int
    event_type: str
    space_id: str | None = None
    journey_id: str | None = None
    quest_id: str | None = None
    user_address: str | None = None
    reward_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    next_after_id: int | None = None
