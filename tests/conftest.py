"""Shared fixtures: in-memory SQLite database, a recording Redis and an API client."""

from __future__ import annotations

import json

import pytest
from httpx import ASGITransport, AsyncClient

from bizops.app import create_app
from bizops.database import create_engine, create_schema, get_session_factory
from bizops.models.user import User
from bizops.permissions import Principal
from bizops.security import create_access_token
from bizops.ws.connection_manager import ConnectionManager


class RecordingRedis:
    """Stands in for ``app.state.redis``; keeps every published feed event."""

    def __init__(self) -> None:
        self.published: list[tuple[str, dict]] = []

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, json.loads(message)))
        return 1

    async def ping(self) -> bool:
        return True

    def events(self, resource: str) -> list[dict]:
        return [event for channel, event in self.published if channel == f"ws:feed:{resource}"]


@pytest.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite://")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> RecordingRedis:
    return RecordingRedis()


@pytest.fixture
def app(session_factory, fake_redis):
    """The real app with lifespan state wired by hand."""
    app = create_app()
    app.state.session_factory = session_factory
    app.state.redis = fake_redis
    app.state.connection_manager = ConnectionManager()
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly; returns the stored row."""

    async def _make(
        email: str,
        role: str = "STAFF",
        name: str | None = None,
        team: str = "CHUNG",
        is_active: bool = True,
        permissions: dict | None = None,
        password_hash: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                name=name or email.split("@")[0],
                role=role,
                team=team,
                is_active=is_active,
                permissions=permissions or {},
                password_hash=password_hash,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


def principal_of(user: User) -> Principal:
    return Principal.from_user(user)


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_access_token(user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


def jsonapi(type_: str, **attributes) -> dict:
    return {"data": {"type": type_, "attributes": attributes}}


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user("admin@example.com", role="ADMIN", name="Admin")


@pytest.fixture
async def seller(make_user) -> User:
    return await make_user("an@example.com", role="SALE", name="An")


@pytest.fixture
async def staff(make_user) -> User:
    return await make_user("staff@example.com", role="STAFF", name="Staff")
