"""Test fixtures — a fresh in-memory database and realtime core per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite + StaticPool,
   so every session shares the one connection) with the schema created.
2. Each test builds its own app through create_app(notifier), so the
   registry, cache and broadcasts it observes belong to that test alone.
3. get_db and get_current_user are overridden — no Postgres, no real JWTs.
"""

import os

os.environ.setdefault("STALLPOS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STALLPOS_ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stallpos.auth.dependencies import CurrentIdentity, get_current_user
from stallpos.db.engine import get_db
from stallpos.db.models import Base
from stallpos.events.notifier import EventNotifier
from stallpos.main import create_app
from stallpos.realtime.broadcast import BroadcastRouter
from stallpos.realtime.cache import DatasetCache
from stallpos.realtime.registry import ConnectionRegistry

TEST_DB_URL = "sqlite+aiosqlite://"


class RecordingTransport:
    """Transport that keeps every frame it was handed."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.closed = False
        self.fail = fail

    def send(self, message: dict) -> None:
        if self.fail:
            raise ConnectionError("socket is gone")
        self.frames.append(message)

    def close(self) -> None:
        self.closed = True

    @property
    def events(self) -> list[str]:
        return [f["event"] for f in self.frames]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def transport_factory():
    return RecordingTransport


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def router(registry):
    return BroadcastRouter(registry)


@pytest.fixture
def cache():
    return DatasetCache(default_ttl=300.0)


@pytest.fixture
def notifier(registry, router, cache):
    return EventNotifier(registry, router, cache)


@pytest.fixture
def app(notifier):
    return create_app(notifier)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session over a throwaway in-memory database."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
    await engine.dispose()


@pytest.fixture
def identity():
    """The caller every `client` request authenticates as.

    Tests switch roles by assigning identity.role.
    """
    return CurrentIdentity(user_id="user-1", role="admin")


@pytest_asyncio.fixture()
async def client(app, db_session, identity):
    """HTTP client with the app's get_db and auth overridden for testing."""

    async def override_get_db():
        yield db_session

    def override_get_current_user():
        return identity

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(app, db_session):
    """HTTP client WITHOUT auth override — for testing real JWT flows."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
