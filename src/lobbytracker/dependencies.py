"""FastAPI dependency injection functions."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lobbytracker.db.engine import get_session
from lobbytracker.db.snapshot_store import SnapshotStore
from lobbytracker.services.geoip import GeoIPLocator
from lobbytracker.services.lobby import LobbyService
from lobbytracker.services.lobby_client import LobbyClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async for session in get_session():
        yield session


def get_lobby_client(request: Request) -> LobbyClient:
    """Return the lobby client opened in the application lifespan."""
    return request.app.state.lobby_client


def get_geo_locator(request: Request) -> GeoIPLocator:
    """Return the GeoIP locator opened in the application lifespan."""
    return request.app.state.geo_locator


def get_lobby_service(
    db: AsyncSession = Depends(get_db),
    lobby: LobbyClient = Depends(get_lobby_client),
    locator: GeoIPLocator = Depends(get_geo_locator),
) -> LobbyService:
    """Build a lobby service bound to the request's session."""
    return LobbyService(SnapshotStore(db), lobby, locator)
