"""Journey completion and reward issuance.

Rules:
- A user claims a journey once their journey points reach reward_required_points
- Each (journey, user) pair mints exactly one reward, enforced by a unique completion row
- The reward snapshots the journey's name, description and image at mint time
- Only Transferable rewards may change owner, and only by their current owner
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.models import Journey, JourneyCompletion, Reward, RewardType
from questhub.errors import (
    JourneyAlreadyCompletedError,
    JourneyNotCompletedError,
    NotFoundError,
    NotRewardOwnerError,
    RewardNotTransferableError,
)
from questhub.events.service import EventType, emit
from questhub.journeys.service import get_journey, is_completed, user_points
from questhub.spaces.service import get_space
from questhub.versioning import check_version

logger = logging.getLogger(__name__)


async def complete_journey(db: AsyncSession, space_id: str, journey_id: str, sender: str) -> Reward:
    """Claim the journey reward for ``sender``. Returns the freshly minted reward."""
    space = await get_space(db, space_id)
    check_version(space)
    journey = await get_journey(db, space.id, journey_id)

    if await is_completed(db, journey.id, sender):
        raise JourneyAlreadyCompletedError(f"{sender} already completed journey {journey.id}")

    points = await user_points(db, journey.id, sender)
    if points is None or points < journey.reward_required_points:
        raise JourneyNotCompletedError(
            f"{sender} has {points or 0} of {journey.reward_required_points} required points"
        )

    reward = Reward(
        variant=RewardType(journey.reward_type).value,
        owner=sender,
        claimer=sender,
        space_id=space.id,
        journey_id=journey.id,
        name=journey.name,
        description=journey.description,
        image_url=journey.reward_image_url,
    )
    db.add(reward)
    await db.flush()

    db.add(JourneyCompletion(journey_id=journey.id, user_address=sender, reward_id=reward.id))
    try:
        await db.flush()
    except IntegrityError:
        raise JourneyAlreadyCompletedError(f"{sender} already completed journey {journey.id}") from None

    await db.execute(
        update(Journey)
        .where(Journey.id == journey.id)
        .values(total_completed=Journey.total_completed + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(journey, attribute_names=["total_completed"])

    await emit(
        db,
        EventType.JOURNEY_COMPLETED,
        space_id=space.id,
        journey_id=journey.id,
        user_address=sender,
        reward_id=reward.id,
    )
    logger.info("Journey completed: %s by %s (reward=%s, %s)", journey.id, sender, reward.id, reward.variant)
    return reward


async def get_reward(db: AsyncSession, reward_id: str) -> Reward:
    reward = await db.get(Reward, reward_id)
    if reward is None:
        raise NotFoundError(f"Reward {reward_id} not found")
    return reward


async def list_rewards(db: AsyncSession, owner: str) -> list[Reward]:
    """Rewards currently held by ``owner``, oldest first."""
    result = await db.execute(
        select(Reward)
        .where(Reward.owner == owner)
        .order_by(Reward.minted_at.asc(), Reward.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def transfer_reward(db: AsyncSession, reward_id: str, sender: str, recipient: str) -> Reward:
    """Move a Transferable reward from its owner to ``recipient``."""
    reward = await get_reward(db, reward_id)
    if reward.owner != sender:
        raise NotRewardOwnerError(f"{sender} does not own reward {reward.id}")
    if reward.variant != RewardType.TRANSFERABLE.value:
        raise RewardNotTransferableError(f"Reward {reward.id} is soulbound")

    result = await db.execute(
        update(Reward)
        .where(Reward.id == reward.id, Reward.owner == sender)
        .values(owner=recipient)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotRewardOwnerError(f"{sender} does not own reward {reward.id}")
    await db.refresh(reward, attribute_names=["owner"])

    await emit(
        db,
        EventType.REWARD_TRANSFERRED,
        space_id=reward.space_id,
        journey_id=reward.journey_id,
        user_address=recipient,
        reward_id=reward.id,
    )
    logger.info("Reward %s transferred: %s -> %s", reward.id, sender, recipient)
    return reward
