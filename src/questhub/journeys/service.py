"""Journey lifecycle: time-boxed campaigns inside a space.

State progression: (absent) -> active -> [modified] -> removed
- Creation charges the hub's journey-creation fee, exact amount
- Removal requires an empty quest table and drops every per-user side table
- Writers touch a single field and never alter rewards already minted
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.models import (
    Capability,
    Journey,
    JourneyCompletion,
    JourneyProgress,
    Quest,
    RewardType,
)
from questhub.errors import (
    InvalidFieldError,
    InvalidRewardTypeError,
    InvalidTimeError,
    JourneyNotEmptyError,
    NotFoundError,
)
from questhub.events.service import EventType, emit
from questhub.hub.service import get_hub
from questhub.spaces.service import get_admin_space
from questhub.treasury.service import collect_fee
from questhub.versioning import check_version

logger = logging.getLogger(__name__)


class JourneyField(str, enum.Enum):
    NAME = "name"
    DESCRIPTION = "description"
    REWARD_IMAGE_URL = "reward_image_url"
    REWARD_REQUIRED_POINTS = "reward_required_points"
    REWARD_TYPE = "reward_type"
    START_TIME = "start_time"
    END_TIME = "end_time"


_STRING_FIELDS = {JourneyField.NAME, JourneyField.DESCRIPTION, JourneyField.REWARD_IMAGE_URL}
_INT_FIELDS = {JourneyField.REWARD_REQUIRED_POINTS, JourneyField.START_TIME, JourneyField.END_TIME}

_REWARD_TYPE_ALIASES: dict[Any, RewardType] = {
    0: RewardType.TRANSFERABLE,
    1: RewardType.NON_TRANSFERABLE,
    "transferable": RewardType.TRANSFERABLE,
    "nontransferable": RewardType.NON_TRANSFERABLE,
    "non_transferable": RewardType.NON_TRANSFERABLE,
    "soulbound": RewardType.NON_TRANSFERABLE,
}


def parse_reward_type(value: Any) -> RewardType:
    """Accept the enum, its name (any case), or the legacy 0/1 codes."""
    if isinstance(value, RewardType):
        return value
    if isinstance(value, bool):
        raise InvalidRewardTypeError(f"Invalid reward type: {value!r}")
    key = value.strip().lower() if isinstance(value, str) else value
    try:
        return _REWARD_TYPE_ALIASES[key]
    except (KeyError, TypeError):
        raise InvalidRewardTypeError(f"Invalid reward type: {value!r}") from None


def _check_window(start_time: int, end_time: int) -> None:
    if start_time > end_time:
        raise InvalidTimeError(f"Journey window [{start_time}, {end_time}] is empty")


def in_window(journey: Journey, now_ms: int) -> bool:
    """Inclusive on both bounds."""
    return journey.start_time <= now_ms <= journey.end_time


def require_window(journey: Journey, now_ms: int) -> None:
    if not in_window(journey, now_ms):
        raise InvalidTimeError(
            f"Time {now_ms} is outside journey {journey.id} window [{journey.start_time}, {journey.end_time}]"
        )


async def get_journey(db: AsyncSession, space_id: str, journey_id: str) -> Journey:
    """Journey lookup scoped to its parent space."""
    journey = await db.get(Journey, journey_id)
    if journey is None or journey.space_id != space_id:
        raise NotFoundError(f"Journey {journey_id} not found in space {space_id}")
    return journey


async def list_journeys(db: AsyncSession, space_id: str) -> list[Journey]:
    result = await db.execute(
        select(Journey).where(Journey.space_id == space_id).order_by(Journey.created_at.asc(), Journey.id.asc())
    )
    return list(result.scalars().all())


async def create_journey(
    db: AsyncSession,
    payment: int,
    admin_cap: Capability,
    space_id: str,
    reward_type: Any,
    reward_image_url: str,
    reward_required_points: int,
    name: str,
    description: str,
    start_time: int,
    end_time: int,
) -> Journey:
    """Create a journey in ``space_id``, paying the journey-creation fee into the hub treasury."""
    hub = await get_hub(db, for_update=True)
    check_version(hub)
    space = await get_admin_space(db, admin_cap, space_id)
    parsed_type = parse_reward_type(reward_type)
    _check_window(start_time, end_time)

    await collect_fee(db, hub, payment, hub.fee_journey_creation, memo=f"journey:{space.id}")

    journey = Journey(
        space_id=space.id,
        reward_type=parsed_type.value,
        reward_required_points=reward_required_points,
        reward_image_url=reward_image_url,
        name=name,
        description=description,
        start_time=start_time,
        end_time=end_time,
        total_completed=0,
    )
    db.add(journey)
    await db.flush()

    await emit(db, EventType.JOURNEY_CREATED, space_id=space.id, journey_id=journey.id)
    logger.info("Journey created: %s (id=%s, space=%s)", name, journey.id, space.id)
    return journey


async def remove_journey(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    journey_id: str,
) -> None:
    """Remove an empty journey together with its per-user tables."""
    space = await get_admin_space(db, admin_cap, space_id)
    journey = await get_journey(db, space.id, journey_id)

    remaining = await quest_count(db, journey.id)
    if remaining:
        raise JourneyNotEmptyError(f"Journey {journey.id} still has {remaining} quest(s)")

    await db.execute(delete(JourneyProgress).where(JourneyProgress.journey_id == journey.id))
    await db.execute(delete(JourneyCompletion).where(JourneyCompletion.journey_id == journey.id))
    await db.delete(journey)
    await db.flush()

    await emit(db, EventType.JOURNEY_REMOVED, space_id=space.id, journey_id=journey_id)
    logger.info("Journey removed: %s (space=%s)", journey_id, space.id)


async def update_journey(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    journey_id: str,
    field: JourneyField,
    value: Any,
) -> Journey:
    """Single-field writer for an existing journey."""
    space = await get_admin_space(db, admin_cap, space_id)
    journey = await get_journey(db, space.id, journey_id)

    if field is JourneyField.REWARD_TYPE:
        journey.reward_type = parse_reward_type(value).value
    elif field in _STRING_FIELDS:
        if not isinstance(value, str):
            raise InvalidFieldError(f"Journey {field.value} must be a string")
        setattr(journey, field.value, value)
    elif field in _INT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidFieldError(f"Journey {field.value} must be a non-negative integer")
        if field is JourneyField.START_TIME:
            _check_window(value, journey.end_time)
        elif field is JourneyField.END_TIME:
            _check_window(journey.start_time, value)
        setattr(journey, field.value, value)

    await db.flush()
    logger.info("Journey %s updated: %s", journey.id, field.value)
    return journey


# ---------------------------------------------------------------------------
# Per-user views
# ---------------------------------------------------------------------------


async def user_progress(db: AsyncSession, journey_id: str, address: str) -> dict[str, Any]:
    """Points, completed-quest count and claim flag for ``address``. Defaults when absent."""
    progress = (
        await db.execute(
            select(JourneyProgress.points, JourneyProgress.completed_quests).where(
                JourneyProgress.journey_id == journey_id,
                JourneyProgress.user_address == address,
            )
        )
    ).one_or_none()
    completed = await is_completed(db, journey_id, address)
    return {
        "points": progress.points if progress else 0,
        "completed_quests": progress.completed_quests if progress else 0,
        "completed": completed,
    }


async def user_points(db: AsyncSession, journey_id: str, address: str) -> int | None:
    """Journey points of ``address``, or None if the user never scored in this journey."""
    result = await db.execute(
        select(JourneyProgress.points).where(
            JourneyProgress.journey_id == journey_id,
            JourneyProgress.user_address == address,
        )
    )
    return result.scalar_one_or_none()


async def is_completed(db: AsyncSession, journey_id: str, address: str) -> bool:
    result = await db.execute(
        select(JourneyCompletion.id).where(
            JourneyCompletion.journey_id == journey_id,
            JourneyCompletion.user_address == address,
        )
    )
    return result.scalar_one_or_none() is not None


async def quest_count(db: AsyncSession, journey_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(Quest).where(Quest.journey_id == journey_id))
    return result.scalar_one()
