"""Pydantic models for space endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from questhub.spaces.service import SpaceField


class CreateSpaceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    image_url: str = ""
    website_url: str = ""
    twitter_url: str = ""


class SpaceResponse(BaseModel):
    id: str
    version: int
    name: str
    description: str
    image_url: str
    website_url: str
    twitter_url: str
    creator: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CreateSpaceResponse(BaseModel):
    """The admin capability secret is returned once and never stored in clear."""

    space: SpaceResponse
    capability_id: str
    capability_token: str


class UpdateSpaceRequest(BaseModel):
    field: SpaceField
    value: str


class SpacePointsResponse(BaseModel):
    space_id: str
    address: str
    points: int


class LeaderboardEntry(BaseModel):
    rank: int
    address: str
    points: int


class LeaderboardResponse(BaseModel):
    space_id: str
    entries: list[LeaderboardEntry]
