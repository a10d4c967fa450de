"""HTTP client for the Klei lobby listing service."""

import gzip
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from lobbytracker.config import Settings
from lobbytracker.errors import ServerNotFound, UpstreamUnavailable
from lobbytracker.schemas.lobby import (
    LobbyRegion,
    LobbyRegionList,
    LobbyServerDetails,
    LobbyServerList,
    LobbyServerRecord,
    Platform,
)

logger = logging.getLogger(__name__)

GAME_ID = "DontStarveTogether"
_GZIP_MAGIC = b"\x1f\x8b"


class LobbyClient:
    """Reads region capabilities, server listings and server details."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "LobbyClient":
        http = httpx.AsyncClient(
            timeout=settings.lobby_timeout_seconds,
            proxy=settings.lobby_proxy or None,
        )
        return cls(http, settings)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_regions(self) -> list[LobbyRegion]:
        """Return every region the lobby can be queried for."""
        payload = await self._request("GET", self._settings.lobby_regions_url)
        return self._parse(LobbyRegionList, payload).regions

    async def list_servers(
        self, region: str, platform: Platform
    ) -> list[LobbyServerRecord]:
        """Return the listing of one region for one platform."""
        url = self._settings.lobby_list_url.format(
            region=region, platform=platform.lobby_name
        )
        payload = await self._request("GET", url)
        return self._parse(LobbyServerList, payload).servers

    async def get_server_details(self, region: str, row_id: str) -> LobbyServerDetails:
        """Read one server, including players, mods and world data."""
        url = self._settings.lobby_details_url.format(region=region)
        body = {
            "__token": self._settings.klei_token,
            "__gameId": GAME_ID,
            "query": {"__rowId": row_id},
        }
        payload = await self._request("POST", url, json=body)

        entries = payload.get("GET") if isinstance(payload, dict) else None
        if not entries:
            raise ServerNotFound(f"no lobby server {row_id!r} in region {region!r}")
        if not isinstance(entries, list) or not isinstance(entries[0], dict):
            raise UpstreamUnavailable("unexpected lobby payload: details entry is not an object")

        raw = entries[0]
        server = self._parse(LobbyServerRecord, raw)
        known = {
            field.alias or name
            for name, field in LobbyServerRecord.model_fields.items()
        }
        details = {key: value for key, value in raw.items() if key not in known}
        return LobbyServerDetails(server=server, details=details)

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Lobby request %s %s timed out", method, url)
            raise UpstreamUnavailable(f"lobby request to {url} timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Lobby request %s %s returned %d",
                method,
                url,
                exc.response.status_code,
            )
            raise UpstreamUnavailable(
                f"lobby request to {url} returned {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Lobby request %s %s failed: %s", method, url, exc)
            raise UpstreamUnavailable(f"lobby request to {url} failed: {exc}") from exc

        content = response.content
        # The CDN serves .json.gz listings without a Content-Encoding header.
        if content.startswith(_GZIP_MAGIC):
            try:
                content = gzip.decompress(content)
            except (OSError, EOFError) as exc:
                raise UpstreamUnavailable(f"corrupt gzip body from {url}") from exc
        try:
            return json.loads(content)
        except ValueError as exc:
            raise UpstreamUnavailable(f"invalid JSON body from {url}") from exc

    @staticmethod
    def _parse(model, payload):
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise UpstreamUnavailable(f"unexpected lobby payload: {exc}") from exc
