"""Quest lifecycle and per-user attestation.

Per-user state progression: not_started -> started -> completed
Quests with ``requires_start=False`` may also go not_started -> completed.
Transitions are validated: no skipping a required start, no going backwards.
Completion is the single point where points enter the ledger; it is
idempotent per (quest, user) through the UNIQUE(quest_id, user_address) row
and a conditional state update.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.capabilities import require_verifier
from questhub.db.models import Capability, Journey, JourneyProgress, Quest, QuestProgress, QuestState
from questhub.db.upsert import increment
from questhub.errors import (
    InvalidFieldError,
    NotFoundError,
    QuestAlreadyCompletedError,
    QuestAlreadyStartedError,
    QuestNotStartedError,
)
from questhub.events.service import EventType, emit
from questhub.hub.service import get_hub
from questhub.journeys.service import get_journey, require_window
from questhub.spaces.service import add_points, get_admin_space, get_space
from questhub.treasury.service import pay
from questhub.versioning import check_version

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[QuestState, list[QuestState]] = {
    QuestState.NOT_STARTED: [QuestState.STARTED, QuestState.COMPLETED],
    QuestState.STARTED: [QuestState.COMPLETED],
    QuestState.COMPLETED: [],
}


class QuestField(str, enum.Enum):
    NAME = "name"
    DESCRIPTION = "description"
    CALL_TO_ACTION_URL = "call_to_action_url"
    POINTS_AMOUNT = "points_amount"
    TARGET_PROGRAM_ID = "target_program_id"
    MODULE_NAME = "module_name"
    FUNCTION_NAME = "function_name"
    ARGUMENTS = "arguments"
    REQUIRES_START = "requires_start"


_STRING_FIELDS = {
    QuestField.NAME,
    QuestField.DESCRIPTION,
    QuestField.CALL_TO_ACTION_URL,
    QuestField.TARGET_PROGRAM_ID,
    QuestField.MODULE_NAME,
    QuestField.FUNCTION_NAME,
}


def validate_transition(current: QuestState, target: QuestState, *, requires_start: bool) -> None:
    """Validate a per-user quest transition. Raises the matching state-machine error."""
    if current is QuestState.COMPLETED:
        raise QuestAlreadyCompletedError("Quest already completed by this user")
    if target is QuestState.STARTED and current is QuestState.STARTED:
        raise QuestAlreadyStartedError("Quest already started by this user")
    if target is QuestState.COMPLETED and current is QuestState.NOT_STARTED and requires_start:
        raise QuestNotStartedError("Quest must be started before completion")
    if target not in VALID_TRANSITIONS[current]:
        raise ValueError(f"Invalid transition: {current.value} -> {target.value}")


def _check_arguments(value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(arg, str) for arg in value):
        raise InvalidFieldError("Quest arguments must be a list of strings")
    return list(value)


def _check_points(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidFieldError("Quest points_amount must be a non-negative integer")
    return value


async def get_quest(db: AsyncSession, journey_id: str, quest_id: str) -> Quest:
    """Quest lookup scoped to its parent journey."""
    quest = await db.get(Quest, quest_id)
    if quest is None or quest.journey_id != journey_id:
        raise NotFoundError(f"Quest {quest_id} not found in journey {journey_id}")
    return quest


async def list_quests(db: AsyncSession, journey_id: str) -> list[Quest]:
    result = await db.execute(
        select(Quest).where(Quest.journey_id == journey_id).order_by(Quest.created_at.asc(), Quest.id.asc())
    )
    return list(result.scalars().all())


async def create_quest(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    journey_id: str,
    points_amount: int,
    name: str,
    description: str,
    call_to_action_url: str,
    target_program_id: str,
    module_name: str,
    function_name: str,
    arguments: list[str],
    requires_start: bool = False,
) -> Quest:
    """Append a quest to a journey of the capability's space."""
    space = await get_admin_space(db, admin_cap, space_id)
    journey = await get_journey(db, space.id, journey_id)

    quest = Quest(
        journey_id=journey.id,
        points_amount=_check_points(points_amount),
        name=name,
        description=description,
        call_to_action_url=call_to_action_url,
        target_program_id=target_program_id,
        module_name=module_name,
        function_name=function_name,
        arguments=_check_arguments(arguments),
        requires_start=requires_start,
        total_completed=0,
    )
    db.add(quest)
    await db.flush()

    await emit(db, EventType.QUEST_CREATED, space_id=space.id, journey_id=journey.id, quest_id=quest.id)
    logger.info("Quest created: %s (id=%s, journey=%s)", name, quest.id, journey.id)
    return quest


async def remove_quest(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    journey_id: str,
    quest_id: str,
) -> None:
    """Remove a quest and its per-user state table. Points already granted stay granted."""
    space = await get_admin_space(db, admin_cap, space_id)
    journey = await get_journey(db, space.id, journey_id)
    quest = await get_quest(db, journey.id, quest_id)

    await db.execute(delete(QuestProgress).where(QuestProgress.quest_id == quest.id))
    await db.delete(quest)
    await db.flush()

    await emit(db, EventType.QUEST_REMOVED, space_id=space.id, journey_id=journey.id, quest_id=quest_id)
    logger.info("Quest removed: %s (journey=%s)", quest_id, journey.id)


async def update_quest(
    db: AsyncSession,
    admin_cap: Capability,
    space_id: str,
    journey_id: str,
    quest_id: str,
    field: QuestField,
    value: Any,
) -> Quest:
    """Single-field writer for an existing quest."""
    space = await get_admin_space(db, admin_cap, space_id)
    journey = await get_journey(db, space.id, journey_id)
    quest = await get_quest(db, journey.id, quest_id)

    if field is QuestField.POINTS_AMOUNT:
        quest.points_amount = _check_points(value)
    elif field is QuestField.ARGUMENTS:
        quest.arguments = _check_arguments(value)
    elif field is QuestField.REQUIRES_START:
        if not isinstance(value, bool):
            raise InvalidFieldError("Quest requires_start must be a boolean")
        quest.requires_start = value
    elif field in _STRING_FIELDS:
        if not isinstance(value, str):
            raise InvalidFieldError(f"Quest {field.value} must be a string")
        setattr(quest, field.value, value)

    await db.flush()
    logger.info("Quest %s updated: %s", quest.id, field.value)
    return quest


# ---------------------------------------------------------------------------
# Per-user state
# ---------------------------------------------------------------------------


async def user_state(db: AsyncSession, quest_id: str, address: str) -> QuestState:
    """Explicit state for ``address``; NOT_STARTED when no row exists."""
    result = await db.execute(
        select(QuestProgress.state).where(
            QuestProgress.quest_id == quest_id,
            QuestProgress.user_address == address,
        )
    )
    state = result.scalar_one_or_none()
    return QuestState(state) if state is not None else QuestState.NOT_STARTED


async def is_started(db: AsyncSession, quest_id: str, address: str) -> bool:
    return await user_state(db, quest_id, address) is not QuestState.NOT_STARTED


async def is_completed(db: AsyncSession, quest_id: str, address: str) -> bool:
    return await user_state(db, quest_id, address) is QuestState.COMPLETED


async def _load_for_user(
    db: AsyncSession, space_id: str, journey_id: str, quest_id: str
) -> tuple[Journey, Quest]:
    space = await get_space(db, space_id)
    check_version(space)
    journey = await get_journey(db, space.id, journey_id)
    quest = await get_quest(db, journey.id, quest_id)
    return journey, quest


async def start_quest(
    db: AsyncSession,
    payment: int,
    space_id: str,
    journey_id: str,
    quest_id: str,
    sender: str,
    now_ms: int,
) -> QuestProgress:
    """Pay the quest-start fee to the verifier and mark the quest started for ``sender``."""
    hub = await get_hub(db)
    check_version(hub)
    journey, quest = await _load_for_user(db, space_id, journey_id, quest_id)
    require_window(journey, now_ms)

    current = await user_state(db, quest.id, sender)
    if current is not QuestState.NOT_STARTED:
        raise QuestAlreadyStartedError("Quest already started by this user")

    await pay(db, hub.verifier_address, payment, hub.fee_quest_start, memo=f"quest_start:{quest.id}")

    progress = QuestProgress(quest_id=quest.id, user_address=sender, state=QuestState.STARTED.value)
    db.add(progress)
    try:
        await db.flush()
    except IntegrityError:
        raise QuestAlreadyStartedError("Quest already started by this user") from None

    logger.info("Quest started: %s by %s", quest.id, sender)
    return progress


async def complete_quest(
    db: AsyncSession,
    verifier_cap: Capability,
    space_id: str,
    journey_id: str,
    quest_id: str,
    user: str,
    now_ms: int,
) -> Quest:
    """Attest that ``user`` completed the quest and credit its points bottom-up.

    Quest counter, journey points and completed-quest count, and space
    points all move in the same transaction.
    """
    require_verifier(verifier_cap)
    journey, quest = await _load_for_user(db, space_id, journey_id, quest_id)
    require_window(journey, now_ms)

    current = await user_state(db, quest.id, user)
    validate_transition(current, QuestState.COMPLETED, requires_start=quest.requires_start)

    if current is QuestState.STARTED:
        result = await db.execute(
            update(QuestProgress)
            .where(
                QuestProgress.quest_id == quest.id,
                QuestProgress.user_address == user,
                QuestProgress.state == QuestState.STARTED.value,
            )
            .values(state=QuestState.COMPLETED.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise QuestAlreadyCompletedError("Quest already completed by this user")
    else:
        db.add(QuestProgress(quest_id=quest.id, user_address=user, state=QuestState.COMPLETED.value))
        try:
            await db.flush()
        except IntegrityError:
            raise QuestAlreadyCompletedError("Quest already completed by this user") from None

    await db.execute(
        update(Quest)
        .where(Quest.id == quest.id)
        .values(total_completed=Quest.total_completed + 1)
        .execution_options(synchronize_session=False)
    )
    await increment(
        db,
        JourneyProgress,
        {"journey_id": journey.id, "user_address": user},
        {"points": quest.points_amount, "completed_quests": 1},
    )
    await add_points(db, journey.space_id, user, quest.points_amount)
    await db.refresh(quest, attribute_names=["total_completed"])

    await emit(
        db,
        EventType.QUEST_COMPLETED,
        space_id=journey.space_id,
        journey_id=journey.id,
        quest_id=quest.id,
        user_address=user,
    )
    logger.info("Quest completed: %s by %s (+%d points)", quest.id, user, quest.points_amount)
    return quest
