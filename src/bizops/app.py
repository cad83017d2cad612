"""Bizops API application.

Run with ``uvicorn bizops.app:create_app --factory``. The REST API lives
under ``settings.api_prefix`` and the live feeds under ``/ws/feeds``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bizops.api.v1.feeds.ws import router as feeds_ws_router
from bizops.api.v1.router import v1_router
from bizops.config import get_settings
from bizops.database import close_db, create_schema, get_session_factory, init_db
from bizops.redis import close_redis, init_redis
from bizops.services.user_service import UserService
from bizops.ws.connection_manager import ConnectionManager
from bizops.ws.pubsub import PubSubManager


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database, Redis and the feed subscription; close them in reverse."""
    settings = get_settings()

    engine = await init_db(settings.database_url)
    if settings.create_schema:
        await create_schema(engine)
    app.state.db_engine = engine
    app.state.session_factory = get_session_factory(engine)
    app.state.redis = await init_redis(settings.redis_url)

    feeds = ConnectionManager()
    app.state.connection_manager = feeds
    pubsub = PubSubManager(settings.redis_url)
    await pubsub.start(handler=feeds.broadcast)
    app.state.pubsub_manager = pubsub

    async with app.state.session_factory() as db:
        await UserService(db).bootstrap_admin(
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password,
            settings.bootstrap_admin_name,
        )

    yield

    await pubsub.stop()
    await close_redis(app.state.redis)
    await close_db(engine)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Bizops",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )
    app.include_router(v1_router, prefix=settings.api_prefix)
    app.include_router(feeds_ws_router)
    return app
