"""Event feed endpoint for indexers and UIs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.config import get_settings
from questhub.database import get_session
from questhub.events.schemas import EventListResponse, EventResponse
from questhub.events.service import EventType, list_events

router = APIRouter(prefix="/api/v1", tags=["Events"])


@router.get("/events", response_model=EventListResponse)
async def event_feed(
    space_id: str | None = Query(None),
    journey_id: str | None = Query(None),
    user: str | None = Query(None),
    type: EventType | None = Query(None),  # noqa: A002
    after_id: int | None = Query(None, ge=0),
    limit: int = Query(50, ge=1),
    db: AsyncSession = Depends(get_session),
):
    """Events in append order. Pass the last seen ``id`` as ``after_id`` to resume."""
    limit = min(limit, get_settings().events_page_max)
    events, total = await list_events(
        db,
        space_id=space_id,
        journey_id=journey_id,
        user_address=user,
        event_type=type.value if type else None,
        after_id=after_id,
        limit=limit,
    )
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        next_after_id=events[-1].id if events else None,
    )
