"""In-process schedule for lobby sync and expiry cycles."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lobbytracker.config import Settings
from lobbytracker.db.snapshot_store import SnapshotStore
from lobbytracker.services.geoip import GeoIPLocator
from lobbytracker.services.lobby import LobbyService
from lobbytracker.services.lobby_client import LobbyClient

logger = logging.getLogger(__name__)


class LobbyScheduler:
    """Runs sync cycles and expiry sweeps on fixed intervals.

    Each cycle gets its own session and is committed only when it
    completes, so a failed or timed out sync writes nothing.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lobby: LobbyClient,
        locator: GeoIPLocator,
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._lobby = lobby
        self._locator = locator
        self._settings = settings
        self._sync_lock = asyncio.Lock()
        self._tasks: list[asyncio.Task] = []

    def _service(self, session: AsyncSession) -> LobbyService:
        return LobbyService(SnapshotStore(session), self._lobby, self._locator)

    async def run_sync_cycle(self) -> int | None:
        """Collect and store one snapshot.

        Returns the inserted count, or None when skipped because the
        previous cycle is still running.
        """
        if self._sync_lock.locked():
            logger.warning("Previous lobby sync still running, skipping this cycle")
            return None

        async with self._sync_lock:
            async with self._session_factory() as session:
                inserted = await asyncio.wait_for(
                    self._service(session).sync_local_servers(
                        self._settings.collect_concurrency
                    ),
                    timeout=self._settings.collect_timeout_seconds,
                )
                await session.commit()

        logger.info("Lobby sync stored %d servers", inserted)
        return inserted

    async def run_clear_cycle(self) -> tuple[int, int]:
        """Remove snapshots older than the configured ttl."""
        ttl = timedelta(seconds=self._settings.server_ttl_seconds)
        async with self._session_factory() as session:
            deleted, remaining = await self._service(session).clear_expired_servers(ttl)
            await session.commit()

        logger.info("Expired %d servers, %d remain", deleted, remaining)
        return deleted, remaining

    def start(self) -> None:
        self._tasks = [
            asyncio.create_task(
                self._every(self._settings.collect_interval_seconds, self.run_sync_cycle),
                name="lobby-sync",
            ),
            asyncio.create_task(
                self._every(self._settings.clear_interval_seconds, self.run_clear_cycle),
                name="lobby-clear",
            ),
        ]
        logger.info(
            "Scheduler started: sync every %ds, clear every %ds",
            self._settings.collect_interval_seconds,
            self._settings.clear_interval_seconds,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _every(
        self, interval: int, job: Callable[[], Awaitable[object]]
    ) -> None:
        while True:
            try:
                await job()
            except TimeoutError:
                logger.error("%s timed out", job.__name__)
            except Exception:
                logger.exception("%s failed", job.__name__)
            await asyncio.sleep(interval)
