"""Snapshot storage for lobby listings.

Every collection run is appended as one snapshot sharing a ``created_at``
timestamp. Reads only ever look at the newest snapshot and collapse
duplicate listings of the same ``row_id`` to the earliest inserted one.
Writes never deduplicate, so "latest" stays a plain ``max(created_at)``.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy import ColumnElement, Connection, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lobbytracker.clock import now_millis
from lobbytracker.errors import PersistenceFailure
from lobbytracker.models.lobby_server import LobbyServer, LobbyServerTag

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_SIZE = 10

# Optional orderings applied ahead of insertion order. Any other key,
# including "", pages in plain insertion order.
SORT_COLUMNS = {
    "name": LobbyServer.name,
    "connected": LobbyServer.connected,
    "max_connections": LobbyServer.max_connections,
    "area": LobbyServer.area,
    "game_mode": LobbyServer.game_mode,
    "intent": LobbyServer.intent,
    "platform_name": LobbyServer.platform_name,
    "created_at": LobbyServer.created_at,
}


@dataclass
class ServerPage:
    """One page of the current snapshot.

    ``total`` counts every listing in the snapshot, before filters and
    before duplicates are collapsed; ``items`` are deduplicated.
    """

    total: int = 0
    items: list[LobbyServer] = field(default_factory=list)


class SnapshotStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def ensure_indexes(conn: Connection) -> None:
        """Create any missing secondary index. Runs via ``conn.run_sync``."""
        for table in (LobbyServer.__table__, LobbyServerTag.__table__):
            for index in table.indexes:
                index.create(conn, checkfirst=True)

    async def insert_many(self, servers: Sequence[LobbyServer]) -> int:
        """Append servers in list order and return how many were written."""
        if not servers:
            return 0
        try:
            self._session.add_all(servers)
            await self._session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"inserting {len(servers)} servers failed") from exc
        logger.info("Inserted %d servers", len(servers))
        return len(servers)

    async def latest_snapshot(self) -> int | None:
        """Timestamp of the newest snapshot, or None when empty."""
        try:
            result = await self._session.execute(select(func.max(LobbyServer.created_at)))
        except SQLAlchemyError as exc:
            raise PersistenceFailure("reading latest snapshot failed") from exc
        return result.scalar_one_or_none()

    async def find_page(
        self,
        page: int,
        size: int,
        sort: str,
        filters: Sequence[ColumnElement[bool]] = (),
    ) -> ServerPage:
        """Return one page of deduplicated servers from the current snapshot.

        Representatives come back in insertion order unless ``sort`` names
        one of SORT_COLUMNS, which then orders ahead of insertion order.
        """
        if page <= 0:
            page = DEFAULT_PAGE
        if size <= 0:
            size = DEFAULT_SIZE

        created_at = await self.latest_snapshot()
        if created_at is None:
            return ServerPage()

        try:
            total = await self._session.scalar(
                select(func.count())
                .select_from(LobbyServer)
                .where(LobbyServer.created_at == created_at)
            )

            # Earliest listing per row_id within the filtered snapshot
            representatives = (
                select(func.min(LobbyServer.id).label("id"))
                .where(LobbyServer.created_at == created_at)
                .where(*filters)
                .group_by(LobbyServer.row_id)
                .subquery()
            )
            ordering = [LobbyServer.id]
            if sort in SORT_COLUMNS:
                ordering.insert(0, SORT_COLUMNS[sort])
            stmt = (
                select(LobbyServer)
                .join(representatives, LobbyServer.id == representatives.c.id)
                .order_by(*ordering)
                .offset((page - 1) * size)
                .limit(size)
            )
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("querying snapshot page failed") from exc

        return ServerPage(total=total or 0, items=list(result.scalars().all()))

    async def remove_expired(
        self, ttl: timedelta, now: int | None = None
    ) -> tuple[int, int]:
        """Delete listings with ``created_at <= now - ttl``.

        Returns (deleted, remaining). Not snapshot aware: a snapshot that
        straddles the cutoff is partially removed.
        """
        if now is None:
            now = now_millis()
        cutoff = now - int(ttl.total_seconds() * 1000)
        expired = select(LobbyServer.id).where(LobbyServer.created_at <= cutoff)

        try:
            await self._session.execute(
                delete(LobbyServerTag)
                .where(LobbyServerTag.server_id.in_(expired))
                .execution_options(synchronize_session=False)
            )
            result = await self._session.execute(
                delete(LobbyServer)
                .where(LobbyServer.created_at <= cutoff)
                .execution_options(synchronize_session=False)
            )
            await self._session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceFailure("removing expired servers failed") from exc

        remaining = await self.count()
        logger.info(
            "Removed %d servers created at or before %d, %d remain",
            result.rowcount,
            cutoff,
            remaining,
        )
        return result.rowcount, remaining

    async def count(self) -> int:
        try:
            total = await self._session.scalar(select(func.count()).select_from(LobbyServer))
        except SQLAlchemyError as exc:
            raise PersistenceFailure("counting servers failed") from exc
        return total or 0
