"""Space lifecycle — creation through the hub allowlist, metadata writers, space-scoped points."""

from __future__ import annotations

import enum
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.capabilities import mint_capability, require_space_admin
from questhub.db.models import Capability, CapabilityKind, Space, SpacePoints
from questhub.db.upsert import increment
from questhub.errors import InvalidFieldError, NotFoundError
from questhub.events.service import EventType, emit
from questhub.hub.service import consume_creation_credit, get_hub, register_space
from questhub.versioning import CURRENT_VERSION, advance_version, check_version

logger = logging.getLogger(__name__)


class SpaceField(str, enum.Enum):
    NAME = "name"
    DESCRIPTION = "description"
    IMAGE_URL = "image_url"
    WEBSITE_URL = "website_url"
    TWITTER_URL = "twitter_url"


async def get_space(db: AsyncSession, space_id: str) -> Space:
    space = await db.get(Space, space_id)
    if space is None:
        raise NotFoundError(f"Space {space_id} not found")
    return space


async def get_admin_space(db: AsyncSession, admin_cap: Capability, space_id: str) -> Space:
    """Load a space for mutation: capability scope and version both checked."""
    space = await get_space(db, space_id)
    require_space_admin(admin_cap, space)
    check_version(space)
    return space


async def create_space(
    db: AsyncSession,
    sender: str,
    name: str,
    description: str,
    image_url: str,
    website_url: str,
    twitter_url: str,
) -> tuple[Space, Capability, str]:
    """Spend one creation credit of ``sender`` and create a space.

    Returns (space, space_admin_cap, space_admin_token). The token is shown once.
    """
    hub = await get_hub(db, for_update=True)
    check_version(hub)
    await consume_creation_credit(db, hub, sender)

    space = Space(
        version=CURRENT_VERSION,
        name=name,
        description=description,
        image_url=image_url,
        website_url=website_url,
        twitter_url=twitter_url,
        creator=sender,
    )
    db.add(space)
    await db.flush()

    await register_space(db, hub, space.id)
    await emit(db, EventType.SPACE_CREATED, space_id=space.id, user_address=sender)
    cap, token = await mint_capability(db, CapabilityKind.SPACE_ADMIN, sender, space=space)

    logger.info("Space created: %s (id=%s, creator=%s)", name, space.id, sender)
    return space, cap, token


async def update_space(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    field: SpaceField,
    value: str,
) -> Space:
    """Single-field metadata writer."""
    space = await get_admin_space(db, admin_cap, space_id)
    if not isinstance(value, str):
        raise InvalidFieldError(f"Space {field.value} must be a string")
    setattr(space, field.value, value)
    if field is SpaceField.NAME:
        # Keep the denormalized name on every admin cap of this space in sync
        await db.execute(
            update(Capability).where(Capability.space_id == space.id).values(space_name=value)
        )
    await db.flush()
    logger.info("Space %s updated: %s", space.id, field.value)
    return space


async def migrate_space(db: AsyncSession, admin_cap: Capability, space_id: str) -> Space:
    """Advance the space to CURRENT_VERSION. Fails with ENotUpgrade when already current."""
    space = await get_space(db, space_id)
    require_space_admin(admin_cap, space)
    advance_version(space)
    await db.flush()
    return space


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


async def add_points(db: AsyncSession, space_id: str, user: str, amount: int) -> None:
    """Credit ``amount`` to ``user`` on the space leaderboard."""
    await increment(db, SpacePoints, {"space_id": space_id, "user_address": user}, {"points": amount})


async def user_points(db: AsyncSession, space_id: str, address: str) -> int:
    """Space points for ``address`` (0 if absent)."""
    result = await db.execute(
        select(SpacePoints.points).where(
            SpacePoints.space_id == space_id,
            SpacePoints.user_address == address,
        )
    )
    return result.scalar_one_or_none() or 0


async def leaderboard(db: AsyncSession, space_id: str, limit: int = 50) -> list[SpacePoints]:
    """Top users of a space by points, ties broken by first to score."""
    result = await db.execute(
        select(SpacePoints)
        .where(SpacePoints.space_id == space_id)
        .order_by(SpacePoints.points.desc(), SpacePoints.id.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
