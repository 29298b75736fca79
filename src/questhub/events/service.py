"""Ledger event log with Redis pub/sub fan-out for indexers."""

from __future__ import annotations

import enum
import json
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.models import LedgerEvent
from questhub.redis_client import get_redis_optional

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "pubsub:questhub:"
_PENDING_KEY = "questhub.pending_events"


class EventType(str, enum.Enum):
    SPACE_CREATED = "space_created"
    JOURNEY_CREATED = "journey_created"
    JOURNEY_REMOVED = "journey_removed"
    QUEST_CREATED = "quest_created"
    QUEST_REMOVED = "quest_removed"
    QUEST_COMPLETED = "quest_completed"
    JOURNEY_COMPLETED = "journey_completed"
    REWARD_TRANSFERRED = "reward_transferred"


async def emit(
    db: AsyncSession,
    event_type: EventType,
    *,
    space_id: str | None = None,
    journey_id: str | None = None,
    quest_id: str | None = None,
    user_address: str | None = None,
    reward_id: str | None = None,
) -> LedgerEvent:
    """Append an event to the log. Carries identifiers only."""
    event = LedgerEvent(
        event_type=event_type.value,
        space_id=space_id,
        journey_id=journey_id,
        quest_id=quest_id,
        user_address=user_address,
        reward_id=reward_id,
    )
    db.add(event)
    await db.flush()
    db.info.setdefault(_PENDING_KEY, []).append(event)
    return event


def event_payload(event: LedgerEvent) -> dict:
    payload: dict = {"id": event.id, "type": event.event_type}
    for key in ("space_id", "journey_id", "quest_id", "user_address", "reward_id"):
        value = getattr(event, key)
        if value is not None:
            payload[key] = value
    return payload


async def publish(events: list[LedgerEvent], redis: object | None = None) -> None:
    """Broadcast committed events on Redis pub/sub. Best effort: the log table is the source of truth."""
    redis = redis if redis is not None else get_redis_optional()
    if redis is None:
        return
    for event in events:
        try:
            await redis.publish(  # type: ignore[attr-defined]
                f"{CHANNEL_PREFIX}{event.event_type}",
                json.dumps(event_payload(event)),
            )
        except Exception:
            logger.warning("Failed to publish %s event %s", event.event_type, event.id, exc_info=True)


async def list_events(
    db: AsyncSession,
    *,
    space_id: str | None = None,
    journey_id: str | None = None,
    user_address: str | None = None,
    event_type: str | None = None,
    after_id: int | None = None,
    limit: int = 50,
) -> tuple[list[LedgerEvent], int]:
    """Filtered event feed in append order. ``after_id`` gives indexers a resumable cursor."""
    filters = []
    if space_id is not None:
        filters.append(LedgerEvent.space_id == space_id)
    if journey_id is not None:
        filters.append(LedgerEvent.journey_id == journey_id)
    if user_address is not None:
        filters.append(LedgerEvent.user_address == user_address)
    if event_type is not None:
        filters.append(LedgerEvent.event_type == event_type)

    count_query = select(func.count()).select_from(LedgerEvent)
    query = select(LedgerEvent)
    for clause in filters:
        count_query = count_query.where(clause)
        query = query.where(clause)
    total = (await db.execute(count_query)).scalar_one()

    if after_id is not None:
        query = query.where(LedgerEvent.id > after_id)
    result = await db.execute(query.order_by(LedgerEvent.id.asc()).limit(limit))
    return list(result.scalars().all()), total


async def commit_and_publish(db: AsyncSession) -> None:
    """Commit the request transaction, then fan out the events it emitted."""
    await db.commit()
    events = db.info.pop(_PENDING_KEY, [])
    await publish(events)
