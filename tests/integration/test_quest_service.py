"""Integration tests for quest lifecycle, start and completion."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from conftest import ADMIN, ALICE, BOB, JOURNEY_END, JOURNEY_START, make_journey, make_quest, make_space
from questhub.db.models import FeeKind, LedgerEvent, QuestProgress, QuestState, TransferKind, ValueTransfer
from questhub.errors import (
    IncorrectPaymentError,
    InvalidFieldError,
    InvalidTimeError,
    NotAuthorizedError,
    NotFoundError,
    QuestAlreadyCompletedError,
    QuestAlreadyStartedError,
    QuestNotStartedError,
    WrongVersionError,
)
from questhub.hub.service import set_fee, set_verifier_address
from questhub.journeys.service import user_progress
from questhub.quests import service
from questhub.quests.service import QuestField
from questhub.spaces.service import user_points as space_points
from questhub.treasury.service import total_paid_to
from questhub.versioning import CURRENT_VERSION

NOW = 150


async def _complete(db, protocol, space, journey, quest, user=ALICE, now=NOW):
    return await service.complete_quest(
        db, protocol.verifier_cap, space.space.id, journey.id, quest.id, user, now
    )


class TestCreateQuest:

    @pytest.mark.asyncio
    async def test_fields(self, db_session, protocol, space, journey, quest):
        assert quest.journey_id == journey.id
        assert quest.points_amount == 100
        assert quest.arguments == ["0x1", "42"]
        assert quest.requires_start is False
        assert quest.total_completed == 0

    @pytest.mark.asyncio
    async def test_journey_must_belong_to_space(self, db_session, protocol, space, journey):
        other = await make_space(db_session, protocol, creator=BOB, name="Beta")
        with pytest.raises(NotFoundError):
            await service.create_quest(
                db_session, other.cap, other.space.id, journey.id, 1, "q", "", "", "", "", "", []
            )

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, db_session, protocol, space, journey):
        with pytest.raises(InvalidFieldError):
            await service.create_quest(
                db_session, space.cap, space.space.id, journey.id, 1, "q", "", "", "", "", "", [1, 2]
            )

    @pytest.mark.asyncio
    async def test_emits_quest_created(self, db_session, protocol, space, journey, quest):
        result = await db_session.execute(
            select(LedgerEvent.quest_id).where(LedgerEvent.event_type == "quest_created")
        )
        assert result.scalars().all() == [quest.id]


class TestUpdateAndRemoveQuest:

    @pytest.mark.asyncio
    async def test_update_points(self, db_session, protocol, space, journey, quest):
        updated = await service.update_quest(
            db_session, space.cap, space.space.id, journey.id, quest.id, QuestField.POINTS_AMOUNT, 5
        )
        assert updated.points_amount == 5

    @pytest.mark.asyncio
    async def test_update_requires_start_must_be_bool(self, db_session, protocol, space, journey, quest):
        with pytest.raises(InvalidFieldError):
            await service.update_quest(
                db_session, space.cap, space.space.id, journey.id, quest.id, QuestField.REQUIRES_START, "yes"
            )

    @pytest.mark.asyncio
    async def test_remove_drops_state_but_keeps_points(self, db_session, protocol, space, journey, quest):
        await _complete(db_session, protocol, space, journey, quest)
        await service.remove_quest(db_session, space.cap, space.space.id, journey.id, quest.id)

        assert await service.list_quests(db_session, journey.id) == []
        rows = (await db_session.execute(select(QuestProgress))).scalars().all()
        assert rows == []
        assert (await user_progress(db_session, journey.id, ALICE))["points"] == 100
        assert await space_points(db_session, space.space.id, ALICE) == 100

    @pytest.mark.asyncio
    async def test_remove_requires_space_admin(self, db_session, protocol, space, journey, quest):
        with pytest.raises(NotAuthorizedError):
            await service.remove_quest(db_session, protocol.admin_cap, space.space.id, journey.id, quest.id)


class TestStartQuest:

    @pytest.mark.asyncio
    async def test_start_records_state(self, db_session, protocol, space, journey, quest):
        progress = await service.start_quest(db_session, 0, space.space.id, journey.id, quest.id, ALICE, NOW)
        assert progress.state == QuestState.STARTED.value
        assert await service.user_state(db_session, quest.id, ALICE) is QuestState.STARTED
        assert await service.is_started(db_session, quest.id, ALICE)

    @pytest.mark.asyncio
    async def test_double_start(self, db_session, protocol, space, journey, quest):
        await service.start_quest(db_session, 0, space.space.id, journey.id, quest.id, ALICE, NOW)
        with pytest.raises(QuestAlreadyStartedError):
            await service.start_quest(db_session, 0, space.space.id, journey.id, quest.id, ALICE, NOW)

    @pytest.mark.asyncio
    async def test_start_after_completion(self, db_session, protocol, space, journey, quest):
        await _complete(db_session, protocol, space, journey, quest)
        with pytest.raises(QuestAlreadyStartedError):
            await service.start_quest(db_session, 0, space.space.id, journey.id, quest.id, ALICE, NOW)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("now", [JOURNEY_START - 1, JOURNEY_END + 1])
    async def test_outside_window(self, db_session, protocol, space, journey, quest, now):
        with pytest.raises(InvalidTimeError):
            await service.start_quest(db_session, 0, space.space.id, journey.id, quest.id, ALICE, now)

    @pytest.mark.asyncio
    async def test_fee_paid_to_verifier(self, db_session, protocol, space, journey, quest):
        await set_fee(db_session, protocol.admin_cap, FeeKind.QUEST_START, 3)
        await set_verifier_address(db_session, protocol.admin_cap, "0xverifier")
        await service.start_quest(db_session, 3, space.space.id, journey.id, quest.id, ALICE, NOW)

        assert await total_paid_to(db_session, "0xverifier") == 3
        assert await total_paid_to(db_session, ADMIN) == 0
        rows = (
            await db_session.execute(
                select(ValueTransfer.kind, ValueTransfer.amount).where(
                    ValueTransfer.memo == f"quest_start:{quest.id}"
                )
            )
        ).all()
        assert [tuple(r) for r in rows] == [(TransferKind.PAYOUT.value, 3)]

    @pytest.mark.asyncio
    async def test_wrong_fee_leaves_quest_unstarted(self, db_session, protocol, space, journey, quest):
        await set_fee(db_session, protocol.admin_cap, FeeKind.QUEST_START, 3)
        with pytest.raises(IncorrectPaymentError):
            await service.start_quest(db_session, 2, space.space.id, journey.id, quest.id, ALICE, NOW)
        assert await service.user_state(db_session, quest.id, ALICE) is QuestState.NOT_STARTED


class TestCompleteQuest:

    @pytest.mark.asyncio
    async def test_direct_completion_credits_points(self, db_session, protocol, space, journey, quest):
        completed = await _complete(db_session, protocol, space, journey, quest)

        assert completed.total_completed == 1
        assert await service.is_completed(db_session, quest.id, ALICE)
        assert await user_progress(db_session, journey.id, ALICE) == {
            "points": 100,
            "completed_quests": 1,
            "completed": False,
        }
        assert await space_points(db_session, space.space.id, ALICE) == 100

    @pytest.mark.asyncio
    async def test_completion_after_start(self, db_session, protocol, space, journey):
        gated = await make_quest(db_session, space, journey, requires_start=True)
        await service.start_quest(db_session, 0, space.space.id, journey.id, gated.id, ALICE, NOW)
        await _complete(db_session, protocol, space, journey, gated)
        assert await service.user_state(db_session, gated.id, ALICE) is QuestState.COMPLETED

    @pytest.mark.asyncio
    async def test_start_required(self, db_session, protocol, space, journey):
        gated = await make_quest(db_session, space, journey, requires_start=True)
        with pytest.raises(QuestNotStartedError):
            await _complete(db_session, protocol, space, journey, gated)

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(self, db_session, protocol, space, journey, quest):
        await _complete(db_session, protocol, space, journey, quest)
        with pytest.raises(QuestAlreadyCompletedError):
            await _complete(db_session, protocol, space, journey, quest)

        assert (await user_progress(db_session, journey.id, ALICE))["points"] == 100
        assert await space_points(db_session, space.space.id, ALICE) == 100

    @pytest.mark.asyncio
    async def test_only_verifier(self, db_session, protocol, space, journey, quest):
        with pytest.raises(NotAuthorizedError):
            await service.complete_quest(
                db_session, protocol.admin_cap, space.space.id, journey.id, quest.id, ALICE, NOW
            )

    @pytest.mark.asyncio
    async def test_outside_window(self, db_session, protocol, space, journey, quest):
        with pytest.raises(InvalidTimeError):
            await _complete(db_session, protocol, space, journey, quest, now=JOURNEY_END + 50)
        assert await service.user_state(db_session, quest.id, ALICE) is QuestState.NOT_STARTED

    @pytest.mark.asyncio
    async def test_stale_space(self, db_session, protocol, space, journey, quest):
        space.space.version = CURRENT_VERSION - 1
        await db_session.flush()
        with pytest.raises(WrongVersionError):
            await _complete(db_session, protocol, space, journey, quest)

    @pytest.mark.asyncio
    async def test_points_sum_over_quests(self, db_session, protocol, space, journey):
        first = await make_quest(db_session, space, journey, points=30, name="first")
        second = await make_quest(db_session, space, journey, points=45, name="second")
        await _complete(db_session, protocol, space, journey, first)
        await _complete(db_session, protocol, space, journey, second)
        await _complete(db_session, protocol, space, journey, first, user=BOB)

        assert (await user_progress(db_session, journey.id, ALICE))["points"] == 75
        assert (await user_progress(db_session, journey.id, ALICE))["completed_quests"] == 2
        assert (await user_progress(db_session, journey.id, BOB))["points"] == 30
        assert await space_points(db_session, space.space.id, ALICE) == 75

    @pytest.mark.asyncio
    async def test_space_points_span_journeys(self, db_session, protocol, space, journey, quest):
        second_journey = await make_journey(db_session, space)
        second_quest = await make_quest(db_session, space, second_journey, points=20)
        await _complete(db_session, protocol, space, journey, quest)
        await _complete(db_session, protocol, space, second_journey, second_quest)

        assert (await user_progress(db_session, journey.id, ALICE))["points"] == 100
        assert (await user_progress(db_session, second_journey.id, ALICE))["points"] == 20
        assert await space_points(db_session, space.space.id, ALICE) == 120

    @pytest.mark.asyncio
    async def test_scope_isolation_between_spaces(self, db_session, protocol, space, journey, quest):
        other = await make_space(db_session, protocol, creator=BOB, name="Beta")
        await _complete(db_session, protocol, space, journey, quest)
        assert await space_points(db_session, other.space.id, ALICE) == 0
        with pytest.raises(NotFoundError):
            await _complete(db_session, protocol, other, journey, quest)

    @pytest.mark.asyncio
    async def test_emits_quest_completed(self, db_session, protocol, space, journey, quest):
        await _complete(db_session, protocol, space, journey, quest)
        result = await db_session.execute(
            select(LedgerEvent).where(LedgerEvent.event_type == "quest_completed")
        )
        event = result.scalar_one()
        assert (event.space_id, event.journey_id, event.quest_id, event.user_address) == (
            space.space.id,
            journey.id,
            quest.id,
            ALICE,
        )

    @pytest.mark.asyncio
    async def test_unknown_user_state_defaults(self, db_session, protocol, space, journey, quest):
        assert await service.user_state(db_session, quest.id, "0xnobody") is QuestState.NOT_STARTED
        assert not await service.is_started(db_session, quest.id, "0xnobody")
        assert not await service.is_completed(db_session, quest.id, "0xnobody")
