"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from questhub.config import get_settings
from questhub.database import close_db, init_db
from questhub.events.router import router as events_router
from questhub.health.router import router as health_router
from questhub.hub.router import router as hub_router
from questhub.journeys.router import router as journeys_router
from questhub.middleware import setup_middleware
from questhub.quests.router import router as quests_router
from questhub.redis_client import close_redis, init_redis
from questhub.rewards.router import router as rewards_router
from questhub.spaces.router import router as spaces_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="QuestHub API",
        description="Capability-gated quest campaign ledger: spaces, journeys, quests and rewards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(hub_router)
    app.include_router(spaces_router)
    app.include_router(journeys_router)
    app.include_router(quests_router)
    app.include_router(rewards_router)
    app.include_router(events_router)

    return app


app = create_app()
