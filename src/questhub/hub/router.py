"""Hub registry endpoints — fee schedule, creator allowlist, treasury and migration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.capabilities import require_hub_admin
from questhub.auth.dependencies import get_hub_admin_cap, get_sender
from questhub.database import get_session
from questhub.db.models import Capability
from questhub.events.service import commit_and_publish
from questhub.hub import service
from questhub.hub.schemas import (
    CreditRequest,
    CreditResponse,
    FeeRequest,
    HubResponse,
    SpaceListResponse,
    TransferListResponse,
    TransferResponse,
    VerifierAddressRequest,
    WithdrawResponse,
)
from questhub.treasury.service import list_transfers

router = APIRouter(prefix="/api/v1/hub", tags=["Hub"])


@router.get("", response_model=HubResponse)
async def get_hub(db: AsyncSession = Depends(get_session)):
    """Hub singleton: version, fee schedule, treasury balance, verifier address."""
    return HubResponse.model_validate(await service.get_hub(db))


@router.get("/spaces", response_model=SpaceListResponse)
async def list_spaces(db: AsyncSession = Depends(get_session)):
    return SpaceListResponse(space_ids=await service.list_space_ids(db))


@router.get("/credits/{address}", response_model=CreditResponse)
async def get_credit(address: str, db: AsyncSession = Depends(get_session)):
    return CreditResponse(address=address, remaining=await service.available_credit(db, address))


# ── Hub-admin endpoints ──


@router.put("/credits", response_model=CreditResponse)
async def set_credit(
    body: CreditRequest,
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    """Set (not add) an address's space-creation credit."""
    credit = await service.grant_or_set_creation_credit(db, cap, body.creator, body.amount)
    await commit_and_publish(db)
    return CreditResponse(address=credit.address, remaining=credit.remaining)


@router.put("/fees", response_model=HubResponse)
async def set_fee(
    body: FeeRequest,
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    hub = await service.set_fee(db, cap, body.kind, body.amount)
    await commit_and_publish(db)
    return HubResponse.model_validate(hub)


@router.put("/verifier", response_model=HubResponse)
async def set_verifier_address(
    body: VerifierAddressRequest,
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    hub = await service.set_verifier_address(db, cap, body.address)
    await commit_and_publish(db)
    return HubResponse.model_validate(hub)


@router.post("/withdraw", response_model=WithdrawResponse)
async def withdraw(
    sender: str = Depends(get_sender),
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    """Withdraw the whole treasury balance to the calling admin."""
    amount = await service.withdraw(db, cap, sender)
    await commit_and_publish(db)
    return WithdrawResponse(recipient=sender, amount=amount)


@router.post("/migrate", response_model=HubResponse)
async def migrate(
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    hub = await service.migrate(db, cap)
    await commit_and_publish(db)
    return HubResponse.model_validate(hub)


@router.get("/transfers", response_model=TransferListResponse)
async def transfers(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    cap: Capability = Depends(get_hub_admin_cap),
    db: AsyncSession = Depends(get_session),
):
    """Treasury movement history, newest first."""
    require_hub_admin(cap)
    rows, total = await list_transfers(db, page, per_page)
    return TransferListResponse(
        transfers=[TransferResponse.model_validate(r) for r in rows],
        total=total,
        page=page,
        per_page=per_page,
    )
