"""Pydantic models for hub endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from questhub.db.models import FeeKind


class HubResponse(BaseModel):
    id: str
    version: int
    treasury_balance: int
    fee_journey_creation: int
    fee_quest_start: int
    verifier_address: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CreditRequest(BaseModel):
    """Set the remaining space-creation credit of an address."""

    creator: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., ge=0)


class CreditResponse(BaseModel):
    address: str
    remaining: int


class FeeRequest(BaseModel):
    kind: FeeKind
    amount: int = Field(..., ge=0)


class VerifierAddressRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=128)


class WithdrawResponse(BaseModel):
    recipient: str
    amount: int


class SpaceListResponse(BaseModel):
    space_ids: list[str]


class TransferResponse(BaseModel):
    id: int
    kind: str
    recipient: str | None
    amount: int
    memo: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TransferListResponse(BaseModel):
    transfers: list[TransferResponse]
    total: int
    page: int
    per_page: int
