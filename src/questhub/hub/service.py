"""Hub registry — protocol singleton holding fees, treasury, verifier address and the creator allowlist.

Rules:
- Exactly one hub; created by init_protocol together with one hub-admin and one verifier capability
- Every writer requires a hub-admin capability and a hub at CURRENT_VERSION
- Creation credit is *set* by the admin and only ever decremented by space creation
- The space list is append-only and holds identifiers only
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.capabilities import mint_capability, require_hub_admin
from questhub.db.models import Capability, CapabilityKind, CreationCredit, FeeKind, Hub, HubSpace
from questhub.errors import AlreadyInitializedError, InvalidFieldError, NotInitializedError, NotSpaceCreatorError
from questhub.treasury.service import withdraw_all
from questhub.versioning import CURRENT_VERSION, advance_version, check_version

logger = logging.getLogger(__name__)


async def init_protocol(db: AsyncSession, sender: str) -> tuple[Hub, str, str]:
    """Create the hub and mint the hub-admin and verifier capabilities for ``sender``.

    Returns (hub, hub_admin_token, verifier_token). The tokens are not recoverable later.
    """
    existing = await db.execute(select(Hub.id).limit(1))
    if existing.scalar_one_or_none() is not None:
        raise AlreadyInitializedError("Protocol hub already exists")

    hub = Hub(
        version=CURRENT_VERSION,
        treasury_balance=0,
        fee_journey_creation=0,
        fee_quest_start=0,
        verifier_address=sender,
    )
    db.add(hub)
    await db.flush()

    _, admin_token = await mint_capability(db, CapabilityKind.HUB_ADMIN, sender)
    _, verifier_token = await mint_capability(db, CapabilityKind.VERIFIER, sender)

    logger.info("Protocol initialized: hub=%s admin=%s", hub.id, sender)
    return hub, admin_token, verifier_token


async def get_hub(db: AsyncSession, *, for_update: bool = False) -> Hub:
    """Load the hub singleton. ``for_update`` row-locks it for credit/treasury writes."""
    query = select(Hub).limit(1)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    hub = result.scalar_one_or_none()
    if hub is None:
        raise NotInitializedError("Protocol hub has not been initialized")
    return hub


async def _admin_hub(db: AsyncSession, admin_cap: Capability, *, for_update: bool = False) -> Hub:
    require_hub_admin(admin_cap)
    hub = await get_hub(db, for_update=for_update)
    check_version(hub)
    return hub


# ---------------------------------------------------------------------------
# Admin writers
# ---------------------------------------------------------------------------


async def grant_or_set_creation_credit(
    db: AsyncSession,
    admin_cap: Capability,
    creator: str,
    amount: int,
) -> CreationCredit:
    """Set (not add) ``creator``'s remaining space-creation credit."""
    if amount < 0:
        raise InvalidFieldError("Credit amount must be non-negative")
    hub = await _admin_hub(db, admin_cap, for_update=True)

    credit = await db.get(CreationCredit, (hub.id, creator))
    if credit is None:
        credit = CreationCredit(hub_id=hub.id, address=creator, remaining=amount)
        db.add(credit)
    else:
        credit.remaining = amount
    await db.flush()

    logger.info("Creation credit for %s set to %d", creator, amount)
    return credit


async def set_fee(db: AsyncSession, admin_cap: Capability, kind: FeeKind, amount: int) -> Hub:
    """Update one entry of the fee schedule."""
    if amount < 0:
        raise InvalidFieldError("Fee must be non-negative")
    hub = await _admin_hub(db, admin_cap)
    if kind is FeeKind.JOURNEY_CREATION:
        hub.fee_journey_creation = amount
    else:
        hub.fee_quest_start = amount
    await db.flush()
    logger.info("Fee %s set to %d", kind.value, amount)
    return hub


async def set_verifier_address(db: AsyncSession, admin_cap: Capability, address: str) -> Hub:
    """Change where quest-start fees are paid."""
    hub = await _admin_hub(db, admin_cap)
    hub.verifier_address = address
    await db.flush()
    logger.info("Verifier payout address set to %s", address)
    return hub


async def withdraw(db: AsyncSession, admin_cap: Capability, sender: str) -> int:
    """Transfer the full treasury balance to ``sender``. Returns the amount (possibly 0)."""
    hub = await _admin_hub(db, admin_cap, for_update=True)
    return await withdraw_all(db, hub, sender)


async def migrate(db: AsyncSession, admin_cap: Capability) -> Hub:
    """Advance the hub to CURRENT_VERSION. Fails with ENotUpgrade when already current."""
    require_hub_admin(admin_cap)
    hub = await get_hub(db, for_update=True)
    advance_version(hub)
    await db.flush()
    return hub


# ---------------------------------------------------------------------------
# Space registration (called from space creation)
# ---------------------------------------------------------------------------


async def consume_creation_credit(db: AsyncSession, hub: Hub, creator: str) -> int:
    """Spend one credit of ``creator``. Returns the remaining credit."""
    credit = await db.get(CreationCredit, (hub.id, creator), with_for_update=True)
    if credit is None or credit.remaining <= 0:
        raise NotSpaceCreatorError(f"{creator} has no space-creation credit")
    credit.remaining -= 1
    await db.flush()
    return credit.remaining


async def register_space(db: AsyncSession, hub: Hub, space_id: str) -> None:
    db.add(HubSpace(hub_id=hub.id, space_id=space_id))
    await db.flush()


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


async def available_credit(db: AsyncSession, address: str) -> int:
    """Remaining space-creation credit for ``address`` (0 if absent)."""
    result = await db.execute(
        select(CreationCredit.remaining)
        .join(Hub, Hub.id == CreationCredit.hub_id)
        .where(CreationCredit.address == address)
    )
    remaining = result.scalar_one_or_none()
    return remaining or 0


async def list_space_ids(db: AsyncSession) -> list[str]:
    """All space ids in creation order."""
    result = await db.execute(select(HubSpace.space_id).order_by(HubSpace.seq.asc()))
    return list(result.scalars().all())
