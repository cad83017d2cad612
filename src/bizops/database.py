import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str) -> AsyncEngine:
    """Build the async engine for PostgreSQL (asyncpg) or SQLite (aiosqlite).

    An in-memory SQLite URL shares one connection across sessions so every
    session sees the same database.
    """
    if not database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
        )

    options: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in database_url or database_url.rstrip("/").endswith("aiosqlite:"):
        options["poolclass"] = StaticPool
    engine = create_async_engine(database_url, **options)
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


async def init_db(database_url: str) -> AsyncEngine:
    engine = create_engine(database_url)
    logger.info("Database engine ready (%s)", engine.url.get_backend_name())
    return engine


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table from the ORM metadata. Production uses Alembic."""
    from bizops.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def ping_database(session_factory: async_sessionmaker[AsyncSession]) -> bool:
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
