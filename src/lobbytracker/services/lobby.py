"""Lobby operations consumed by the HTTP layer and the scheduler."""

import logging
from datetime import timedelta

from sqlalchemy import ColumnElement, select

from lobbytracker.db.snapshot_store import ServerPage, SnapshotStore
from lobbytracker.errors import InvalidResult
from lobbytracker.models.lobby_server import LobbyServer, LobbyServerTag
from lobbytracker.schemas.lobby import LobbyServerQuery
from lobbytracker.services.collector import collect
from lobbytracker.services.enrichment import enrich_batch
from lobbytracker.services.geoip import GeoIPLocator
from lobbytracker.services.lobby_client import LobbyClient

logger = logging.getLogger(__name__)


def build_server_filters(query: LobbyServerQuery) -> list[ColumnElement[bool]]:
    """Translate query options into conditions that are ANDed together."""
    filters: list[ColumnElement[bool]] = []

    if query.name:
        # Inline flag: SQLite's REGEXP takes no flags argument
        filters.append(LobbyServer.name.regexp_match(f"(?i){query.name}"))
    if query.address:
        filters.append(LobbyServer.address == query.address)
    if query.area:
        filters.append(LobbyServer.area == query.area)
    if query.intent:
        filters.append(LobbyServer.intent == query.intent)
    if query.game_mode:
        filters.append(LobbyServer.game_mode == query.game_mode)

    if query.pvp_enabled is not None:
        filters.append(LobbyServer.pvp_enabled.is_(query.pvp_enabled))
    if query.has_password is not None:
        filters.append(LobbyServer.has_password.is_(query.has_password))
    if query.mod_enabled is not None:
        filters.append(LobbyServer.mod_enabled.is_(query.mod_enabled))

    # Any of the given tags
    tags = [tag.strip() for tag in query.tags.split(",") if tag.strip()]
    if tags:
        tagged = select(LobbyServerTag.server_id).where(LobbyServerTag.tag.in_(tags))
        filters.append(LobbyServer.id.in_(tagged))

    return filters


class LobbyService:
    def __init__(
        self,
        store: SnapshotStore,
        lobby: LobbyClient,
        locator: GeoIPLocator,
    ) -> None:
        self.store = store
        self.lobby = lobby
        self.locator = locator

    async def get_servers_by_page(self, query: LobbyServerQuery) -> ServerPage:
        """Page through the current snapshot with the query's filters."""
        return await self.store.find_page(
            query.page,
            query.size,
            query.sort,
            build_server_filters(query),
        )

    async def get_all_servers_from_lobby(self, limit: int) -> list[LobbyServer]:
        """Collect a fresh snapshot from the lobby without storing it."""
        return await collect(self.lobby, self.locator, limit)

    async def sync_local_servers(self, limit: int) -> int:
        """Collect a snapshot and append it to the store.

        Nothing is committed here; the caller's unit of work decides, so a
        failure in either stage leaves the store untouched.
        """
        servers = await self.get_all_servers_from_lobby(limit)
        return await self.store.insert_many(servers)

    async def clear_expired_servers(self, ttl: timedelta) -> tuple[int, int]:
        """Remove listings older than ``ttl``; returns (deleted, remaining)."""
        return await self.store.remove_expired(ttl)

    async def get_server_details(
        self, region: str, row_id: str
    ) -> tuple[LobbyServer, dict]:
        """Read one server live from the lobby and enrich it."""
        result = await self.lobby.get_server_details(region, row_id)

        servers = enrich_batch([result.server], region, 0, self.locator)
        if not servers:
            raise InvalidResult(f"enriching lobby server {row_id!r} produced no record")

        return servers[0], result.details
