"""SQLAlchemy ORM models."""

from lobbytracker.models.base import Base
from lobbytracker.models.lobby_server import LobbyServer, LobbyServerTag

__all__ = [
    "Base",
    "LobbyServer",
    "LobbyServerTag",
]
