"""Test fixtures and configuration."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lobbytracker.db.snapshot_store import SnapshotStore
from lobbytracker.dependencies import get_db, get_geo_locator, get_lobby_client
from lobbytracker.main import create_app
from lobbytracker.models import Base
from lobbytracker.models.lobby_server import LobbyServer
from lobbytracker.services.enrichment import enrich_batch
from tests.fakes import FakeLobby, FakeLocator


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite engine for tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_lobby() -> FakeLobby:
    return FakeLobby()


@pytest.fixture
def fake_locator() -> FakeLocator:
    return FakeLocator()


@pytest_asyncio.fixture
async def client(
    session_factory, fake_lobby: FakeLobby, fake_locator: FakeLocator
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden DB and upstream dependencies."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lobby_client] = lambda: fake_lobby
    app.dependency_overrides[get_geo_locator] = lambda: fake_locator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def seed_snapshot(session_factory, fake_locator: FakeLocator):
    """Return a coroutine that stores records as one committed snapshot.

    Usage: ``await seed_snapshot(created_at, [(region, record), ...])``.
    """

    async def _seed(created_at: int, entries) -> list[LobbyServer]:
        servers = [
            server
            for region, record in entries
            for server in enrich_batch([record], region, created_at, fake_locator)
        ]
        async with session_factory() as session:
            await SnapshotStore(session).insert_many(servers)
            await session.commit()
        return servers

    return _seed
