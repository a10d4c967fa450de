"""Collects one complete lobby snapshot across every region and platform.

A snapshot is all-or-nothing: the first failing (region, platform) unit
cancels the rest and its error is raised, so callers never see a partial
listing that looks like "region has no servers".
"""

import asyncio
import logging
from collections.abc import Sequence

from lobbytracker.clock import now_millis
from lobbytracker.models.lobby_server import LobbyServer
from lobbytracker.schemas.lobby import EXPLICIT_PLATFORMS, Platform
from lobbytracker.services.enrichment import enrich_batch
from lobbytracker.services.geoip import GeoIPLocator
from lobbytracker.services.lobby_client import LobbyClient

logger = logging.getLogger(__name__)


async def collect(
    lobby: LobbyClient,
    locator: GeoIPLocator,
    limit: int,
    *,
    platforms: Sequence[Platform] = EXPLICIT_PLATFORMS,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> list[LobbyServer]:
    """Fetch and enrich every lobby listing, at most ``limit`` at a time.

    All returned servers share one ``created_at`` taken before fan-out.
    """
    if limit < 1:
        raise ValueError("concurrency limit must be at least 1")

    regions = await lobby.list_regions()
    created_at = now_millis()
    semaphore = asyncio.Semaphore(limit)
    log.info(
        "Collecting snapshot %d: %d regions x %d platforms, limit %d",
        created_at,
        len(regions),
        len(platforms),
        limit,
    )

    async def fetch(region: str, platform: Platform) -> list[LobbyServer]:
        async with semaphore:
            records = await lobby.list_servers(region, platform)
            if not records:
                return []
            servers = enrich_batch(records, region, created_at, locator)
        log.debug("%s/%s: %d servers", region, platform.lobby_name, len(servers))
        return servers

    tasks = [
        asyncio.create_task(fetch(r.region, p), name=f"lobby:{r.region}:{p.lobby_name}")
        for r in regions
        for p in platforms
    ]
    if not tasks:
        return []

    # Filled in completion order by done callbacks.
    failures: list[BaseException] = []

    def record_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            failures.append(task.exception())

    for task in tasks:
        task.add_done_callback(record_failure)

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        # Covers both a failed unit and cancellation of collect itself.
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if failures:
        log.error(
            "Snapshot %d discarded after %d failed units: %s",
            created_at,
            len(failures),
            failures[0],
        )
        raise failures[0]

    servers = [server for task in tasks for server in task.result()]
    log.info("Collected snapshot %d with %d servers", created_at, len(servers))
    return servers
