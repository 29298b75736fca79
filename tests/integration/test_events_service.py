"""Integration tests for the event log and its pub/sub fan-out."""

from __future__ import annotations

import json

import pytest

from conftest import ALICE
from questhub.events import service
from questhub.events.service import CHANNEL_PREFIX, EventType
from questhub.quests.service import complete_quest


class FakeRedis:
    """Records publish calls."""

    def __init__(self, fail: bool = False) -> None:
        self.published: list[tuple[str, dict]] = []
        self.fail = fail

    async def publish(self, channel: str, message: str) -> int:
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, json.loads(message)))
        return 1


class TestEventLog:

    @pytest.mark.asyncio
    async def test_events_in_append_order(self, db_session, protocol, space, journey, quest):
        events, total = await service.list_events(db_session)
        assert total == 3
        assert [e.event_type for e in events] == ["space_created", "journey_created", "quest_created"]

    @pytest.mark.asyncio
    async def test_filters(self, db_session, protocol, space, journey, quest):
        await complete_quest(db_session, protocol.verifier_cap, space.space.id, journey.id, quest.id, ALICE, 150)

        by_user, total = await service.list_events(db_session, user_address=ALICE)
        assert total == 1
        assert by_user[0].event_type == EventType.QUEST_COMPLETED.value

        by_type, _ = await service.list_events(db_session, event_type="journey_created")
        assert [e.journey_id for e in by_type] == [journey.id]

        by_journey, total = await service.list_events(db_session, journey_id=journey.id)
        assert total == 3

    @pytest.mark.asyncio
    async def test_after_id_cursor(self, db_session, protocol, space, journey, quest):
        first_page, total = await service.list_events(db_session, limit=2)
        rest, _ = await service.list_events(db_session, after_id=first_page[-1].id)
        assert total == 3
        assert [e.event_type for e in rest] == ["quest_created"]

    @pytest.mark.asyncio
    async def test_payload_carries_identifiers_only(self, db_session, protocol, space):
        event = await service.emit(db_session, EventType.JOURNEY_REMOVED, space_id=space.space.id, journey_id="j1")
        assert service.event_payload(event) == {
            "id": event.id,
            "type": "journey_removed",
            "space_id": space.space.id,
            "journey_id": "j1",
        }


class TestPublish:

    @pytest.mark.asyncio
    async def test_publish_to_typed_channels(self, db_session, protocol):
        event = await service.emit(db_session, EventType.SPACE_CREATED, space_id="s1")
        redis = FakeRedis()
        await service.publish([event], redis=redis)
        assert redis.published == [(f"{CHANNEL_PREFIX}space_created", {"id": event.id, "type": "space_created", "space_id": "s1"})]

    @pytest.mark.asyncio
    async def test_publish_failure_is_not_fatal(self, db_session, protocol):
        event = await service.emit(db_session, EventType.SPACE_CREATED, space_id="s1")
        await service.publish([event], redis=FakeRedis(fail=True))

    @pytest.mark.asyncio
    async def test_no_redis_is_a_no_op(self, db_session, protocol):
        event = await service.emit(db_session, EventType.SPACE_CREATED, space_id="s1")
        await service.publish([event])

    @pytest.mark.asyncio
    async def test_commit_drains_pending_events(self, db_session, protocol):
        await service.emit(db_session, EventType.SPACE_CREATED, space_id="s1")
        assert db_session.info[service._PENDING_KEY]
        await service.commit_and_publish(db_session)
        assert service._PENDING_KEY not in db_session.info
