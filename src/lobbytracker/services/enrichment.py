"""Turns raw lobby records into persisted, geolocated listings."""

from collections.abc import Iterable

from lobbytracker.models.lobby_server import LobbyServer, LobbyServerTag
from lobbytracker.schemas.lobby import LobbyServerRecord, Platform
from lobbytracker.services.geoip import GeoIPLocator

# WeGame (Rail) servers only exist in the Chinese region.
_RAIL_REGION = "ap-east-1"

_DISPLAY_NAMES = {
    Platform.STEAM: "Steam",
    Platform.PSN: "PlayStation",
    Platform.PS4_OFFICIAL: "PlayStation",
    Platform.XBONE: "Xbox",
    Platform.SWITCH: "Switch",
}


def platform_display_name(region: str, platform: int) -> str:
    """Human readable platform label, or "" for unknown combinations."""
    if platform == Platform.RAIL:
        return "WeGame" if region == _RAIL_REGION else ""
    try:
        return _DISPLAY_NAMES.get(Platform(platform), "")
    except ValueError:
        return ""


def parse_tags(tags: str) -> list[str]:
    """Split the lobby's comma separated tags into distinct names."""
    names = (tag.strip() for tag in tags.split(","))
    return list(dict.fromkeys(name for name in names if name))


def enrich(
    record: LobbyServerRecord,
    region: str,
    created_at: int,
    locator: GeoIPLocator,
) -> LobbyServer:
    """Geolocate one record and attach region, platform label and tags."""
    location = locator.lookup(record.address)
    tag_names = parse_tags(record.tags)

    return LobbyServer(
        **record.model_dump(),
        region=region,
        platform_name=platform_display_name(region, record.platform),
        tag_names=tag_names,
        tag_rows=[LobbyServerTag(tag=name) for name in tag_names],
        continent=location.continent,
        area=location.area,
        city=location.city,
        created_at=created_at,
    )


def enrich_batch(
    records: Iterable[LobbyServerRecord],
    region: str,
    created_at: int,
    locator: GeoIPLocator,
) -> list[LobbyServer]:
    """Enrich a whole listing; the first unresolvable address fails the batch."""
    return [enrich(record, region, created_at, locator) for record in records]
