"""Integration tests for space lifecycle and space points."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from conftest import ALICE, BOB, CREATOR, make_space
from questhub.auth.capabilities import mint_capability
from questhub.db.models import Capability, CapabilityKind, LedgerEvent
from questhub.errors import (
    InvalidFieldError,
    NotAuthorizedError,
    NotFoundError,
    NotSpaceCreatorError,
    NotUpgradeError,
    WrongVersionError,
)
from questhub.hub.service import available_credit, grant_or_set_creation_credit, list_space_ids
from questhub.spaces import service
from questhub.spaces.service import SpaceField
from questhub.versioning import CURRENT_VERSION


class TestCreateSpace:

    @pytest.mark.asyncio
    async def test_requires_credit(self, db_session, protocol):
        with pytest.raises(NotSpaceCreatorError):
            await service.create_space(db_session, ALICE, "Nope", "", "", "", "")

    @pytest.mark.asyncio
    async def test_consumes_one_credit(self, db_session, protocol):
        await grant_or_set_creation_credit(db_session, protocol.admin_cap, CREATOR, 2)
        await service.create_space(db_session, CREATOR, "Alpha", "", "", "", "")
        assert await available_credit(db_session, CREATOR) == 1

    @pytest.mark.asyncio
    async def test_credit_exhausted(self, db_session, protocol):
        await grant_or_set_creation_credit(db_session, protocol.admin_cap, CREATOR, 1)
        await service.create_space(db_session, CREATOR, "Alpha", "", "", "", "")
        with pytest.raises(NotSpaceCreatorError):
            await service.create_space(db_session, CREATOR, "Beta", "", "", "", "")

    @pytest.mark.asyncio
    async def test_space_fields_and_registration(self, db_session, protocol, space):
        created = space.space
        assert created.version == CURRENT_VERSION
        assert created.creator == CREATOR
        assert created.name == "Alpha"
        assert created.twitter_url == "tw"
        assert await list_space_ids(db_session) == [created.id]

    @pytest.mark.asyncio
    async def test_mints_bound_admin_capability(self, db_session, protocol, space):
        assert space.cap.kind == CapabilityKind.SPACE_ADMIN.value
        assert space.cap.space_id == space.space.id
        assert space.cap.space_name == "Alpha"
        assert space.cap.holder == CREATOR
        assert space.token.startswith("qhcap_")

    @pytest.mark.asyncio
    async def test_emits_space_created(self, db_session, protocol, space):
        events = (await db_session.execute(select(LedgerEvent))).scalars().all()
        assert [(e.event_type, e.space_id) for e in events] == [("space_created", space.space.id)]


class TestUpdateSpace:

    @pytest.mark.asyncio
    async def test_single_field_write(self, db_session, protocol, space):
        updated = await service.update_space(
            db_session, space.cap, space.space.id, SpaceField.WEBSITE_URL, "https://alpha.xyz"
        )
        assert updated.website_url == "https://alpha.xyz"
        assert updated.name == "Alpha"

    @pytest.mark.asyncio
    async def test_rename_refreshes_capability_name(self, db_session, protocol, space):
        await service.update_space(db_session, space.cap, space.space.id, SpaceField.NAME, "Alpha Prime")
        result = await db_session.execute(
            select(Capability.space_name).where(Capability.id == space.cap.id)
        )
        assert result.scalar_one() == "Alpha Prime"

    @pytest.mark.asyncio
    async def test_rename_refreshes_every_admin_capability_of_the_space(self, db_session, protocol, space):
        second, _ = await mint_capability(db_session, CapabilityKind.SPACE_ADMIN, BOB, space=space.space)
        other = await make_space(db_session, protocol, creator=ALICE, name="Beta")

        await service.update_space(db_session, space.cap, space.space.id, SpaceField.NAME, "Alpha Prime")
        names = dict(
            (await db_session.execute(select(Capability.id, Capability.space_name))).all()
        )
        assert names[space.cap.id] == "Alpha Prime"
        assert names[second.id] == "Alpha Prime"
        assert names[other.cap.id] == "Beta"

    @pytest.mark.asyncio
    async def test_other_space_admin_rejected(self, db_session, protocol, space):
        other = await make_space(db_session, protocol, creator=BOB, name="Beta")
        with pytest.raises(NotAuthorizedError):
            await service.update_space(db_session, other.cap, space.space.id, SpaceField.NAME, "Hijacked")

    @pytest.mark.asyncio
    async def test_hub_admin_is_not_space_admin(self, db_session, protocol, space):
        with pytest.raises(NotAuthorizedError):
            await service.update_space(db_session, protocol.admin_cap, space.space.id, SpaceField.NAME, "X")

    @pytest.mark.asyncio
    async def test_non_string_value_rejected(self, db_session, protocol, space):
        with pytest.raises(InvalidFieldError):
            await service.update_space(db_session, space.cap, space.space.id, SpaceField.NAME, 42)

    @pytest.mark.asyncio
    async def test_unknown_space(self, db_session, protocol, space):
        with pytest.raises(NotFoundError):
            await service.update_space(db_session, space.cap, "missing", SpaceField.NAME, "X")

    @pytest.mark.asyncio
    async def test_stale_space_is_frozen(self, db_session, protocol, space):
        space.space.version = CURRENT_VERSION - 1
        await db_session.flush()
        with pytest.raises(WrongVersionError):
            await service.update_space(db_session, space.cap, space.space.id, SpaceField.NAME, "X")


class TestMigrateSpace:

    @pytest.mark.asyncio
    async def test_current_space_cannot_migrate(self, db_session, protocol, space):
        with pytest.raises(NotUpgradeError):
            await service.migrate_space(db_session, space.cap, space.space.id)

    @pytest.mark.asyncio
    async def test_migrate_unfreezes_space(self, db_session, protocol, space):
        space.space.version = CURRENT_VERSION - 1
        await db_session.flush()
        migrated = await service.migrate_space(db_session, space.cap, space.space.id)
        assert migrated.version == CURRENT_VERSION
        await service.update_space(db_session, space.cap, space.space.id, SpaceField.DESCRIPTION, "back")

    @pytest.mark.asyncio
    async def test_requires_bound_capability(self, db_session, protocol, space):
        other = await make_space(db_session, protocol, creator=BOB, name="Beta")
        with pytest.raises(NotAuthorizedError):
            await service.migrate_space(db_session, other.cap, space.space.id)


class TestSpacePoints:

    @pytest.mark.asyncio
    async def test_absent_user_reads_zero(self, db_session, protocol, space):
        assert await service.user_points(db_session, space.space.id, ALICE) == 0

    @pytest.mark.asyncio
    async def test_add_points_accumulates(self, db_session, protocol, space):
        await service.add_points(db_session, space.space.id, ALICE, 30)
        await service.add_points(db_session, space.space.id, ALICE, 12)
        assert await service.user_points(db_session, space.space.id, ALICE) == 42

    @pytest.mark.asyncio
    async def test_leaderboard_order(self, db_session, protocol, space):
        await service.add_points(db_session, space.space.id, ALICE, 10)
        await service.add_points(db_session, space.space.id, BOB, 30)
        await service.add_points(db_session, space.space.id, CREATOR, 20)
        rows = await service.leaderboard(db_session, space.space.id, limit=2)
        assert [(r.user_address, r.points) for r in rows] == [(BOB, 30), (CREATOR, 20)]
