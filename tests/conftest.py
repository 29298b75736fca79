"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database (one shared connection via
StaticPool) with tables created from ORM metadata. Redis is not initialized,
so event publishing and rate limiting are skipped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.dependencies import get_clock
from questhub.auth.jwt import create_access_token
from questhub.database import close_db, create_all, get_session_factory, init_db
from questhub.db.models import Capability, CapabilityKind, Hub, Journey, Quest, Space
from questhub.hub.service import grant_or_set_creation_credit, init_protocol
from questhub.journeys.service import create_journey
from questhub.main import create_app
from questhub.quests.service import create_quest
from questhub.spaces.service import create_space

TEST_DATABASE_URL = "sqlite+aiosqlite://"

ADMIN = "0xadmin"
CREATOR = "0xcreator"
ALICE = "0xalice"
BOB = "0xbob"

JOURNEY_START = 100
JOURNEY_END = 200


@dataclass
class Protocol:
    hub: Hub
    admin_cap: Capability
    verifier_cap: Capability
    admin_token: str
    verifier_token: str


@dataclass
class SpaceFixture:
    space: Space
    cap: Capability
    token: str


class FakeClock:
    """Settable epoch-millisecond clock injected in place of the wall clock."""

    def __init__(self, now: int = 150) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def auth_headers(address: str, capability_token: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(address)}"}
    if capability_token is not None:
        headers["X-Capability-Token"] = capability_token
    return headers


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database and a session bound to it."""
    await init_db(TEST_DATABASE_URL)
    await create_all()
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest_asyncio.fixture
async def protocol(db_session: AsyncSession) -> Protocol:
    """Initialized hub with its admin and verifier capabilities (held by ADMIN)."""
    hub, admin_token, verifier_token = await init_protocol(db_session, ADMIN)
    await db_session.commit()
    caps = {
        cap.kind: cap
        for cap in (await db_session.execute(select(Capability).where(Capability.space_id.is_(None)))).scalars()
    }
    return Protocol(
        hub=hub,
        admin_cap=caps[CapabilityKind.HUB_ADMIN.value],
        verifier_cap=caps[CapabilityKind.VERIFIER.value],
        admin_token=admin_token,
        verifier_token=verifier_token,
    )


async def make_space(db: AsyncSession, protocol: Protocol, creator: str = CREATOR, name: str = "Alpha") -> SpaceFixture:
    await grant_or_set_creation_credit(db, protocol.admin_cap, creator, 1)
    space, cap, token = await create_space(db, creator, name, "desc", "img", "web", "tw")
    await db.commit()
    return SpaceFixture(space=space, cap=cap, token=token)


async def make_journey(
    db: AsyncSession,
    space: SpaceFixture,
    *,
    reward_type: str = "Transferable",
    required_points: int = 100,
    payment: int = 0,
) -> Journey:
    journey = await create_journey(
        db,
        payment,
        space.cap,
        space.space.id,
        reward_type,
        "reward.png",
        required_points,
        "Onboarding",
        "First steps",
        JOURNEY_START,
        JOURNEY_END,
    )
    await db.commit()
    return journey


async def make_quest(
    db: AsyncSession,
    space: SpaceFixture,
    journey: Journey,
    *,
    points: int = 100,
    requires_start: bool = False,
    name: str = "Swap once",
) -> Quest:
    quest = await create_quest(
        db,
        space.cap,
        space.space.id,
        journey.id,
        points,
        name,
        "Make one swap",
        "https://example.com/swap",
        "0x2",
        "dex",
        "swap",
        ["0x1", "42"],
        requires_start=requires_start,
    )
    await db.commit()
    return quest


@pytest_asyncio.fixture
async def space(db_session: AsyncSession, protocol: Protocol) -> SpaceFixture:
    return await make_space(db_session, protocol)


@pytest_asyncio.fixture
async def journey(db_session: AsyncSession, space: SpaceFixture) -> Journey:
    return await make_journey(db_session, space)


@pytest_asyncio.fixture
async def quest(db_session: AsyncSession, space: SpaceFixture, journey: Journey) -> Quest:
    return await make_quest(db_session, space, journey)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, clock: FakeClock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app, sharing the test database and a fake clock."""
    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
