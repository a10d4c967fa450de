"""Schemas for the Klei lobby payloads and the lobby endpoints."""

import re
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(IntEnum):
    """Platform codes as reported in the lobby ``platform`` field."""

    STEAM = 1
    PSN = 2
    RAIL = 4
    XBONE = 16
    PS4_OFFICIAL = 19
    SWITCH = 32

    @property
    def lobby_name(self) -> str:
        """Name used in lobby listing urls."""
        return _LOBBY_NAMES[self]


_LOBBY_NAMES = {
    Platform.STEAM: "Steam",
    Platform.PSN: "PSN",
    Platform.RAIL: "Rail",
    Platform.XBONE: "XBone",
    Platform.PS4_OFFICIAL: "PSN",
    Platform.SWITCH: "Switch",
}

# Platforms that have their own listing per region.
EXPLICIT_PLATFORMS: tuple[Platform, ...] = (
    Platform.STEAM,
    Platform.PSN,
    Platform.RAIL,
    Platform.XBONE,
    Platform.SWITCH,
)


# ── Provider payloads ────────────────────────────────────────────────


class LobbyRegion(BaseModel):
    """One queryable lobby region."""

    model_config = ConfigDict(populate_by_name=True)

    region: str = Field(alias="Region")


class LobbyRegionList(BaseModel):
    """Response body of the region capabilities document."""

    model_config = ConfigDict(populate_by_name=True)

    regions: list[LobbyRegion] = Field(default_factory=list, alias="LobbyRegions")


class LobbyServerRecord(BaseModel):
    """A server as listed by the lobby, before enrichment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    row_id: str = Field(alias="__rowId")
    steam_clan_id: str = Field(default="", alias="steamclanid")
    address: str = Field(alias="__addr")
    port: int = 0
    host: str = ""

    name: str = ""
    platform: int = 0
    version: int = Field(default=0, alias="v")
    game_mode: str = Field(default="", alias="mode")
    intent: str = ""
    season: str = ""
    tags: str = ""

    max_connections: int = Field(default=0, alias="maxconnections")
    connected: int = 0
    pvp_enabled: bool = Field(default=False, alias="pvp")
    has_password: bool = Field(default=False, alias="password")
    mod_enabled: bool = Field(default=False, alias="mods")
    is_dedicated: bool = Field(default=False, alias="dedicated")
    client_hosted: bool = Field(default=False, alias="clienthosted")
    allow_new_players: bool = Field(default=False, alias="allownewplayers")
    server_paused: bool = Field(default=False, alias="serverpaused")
    friend_only: bool = Field(default=False, alias="fo")
    clan_only: bool = Field(default=False, alias="clanonly")


class LobbyServerList(BaseModel):
    """Response body of a region/platform listing."""

    model_config = ConfigDict(populate_by_name=True)

    servers: list[LobbyServerRecord] = Field(default_factory=list, alias="GET")


class LobbyServerDetails(BaseModel):
    """A single server read from the lobby plus everything the listing omits."""

    server: LobbyServerRecord
    details: dict = Field(default_factory=dict)


# ── Query options ────────────────────────────────────────────────────


class LobbyServerQuery(BaseModel):
    """Filters and paging for the current snapshot.

    ``name`` is a case-insensitive regular expression.
    Tri-state flags: ``None`` means "don't filter".
    ``tags`` is a comma separated list matched with OR semantics.
    """

    name: str = ""
    address: str = ""
    area: str = ""
    intent: str = ""
    game_mode: str = ""
    pvp_enabled: bool | None = None
    has_password: bool | None = None
    mod_enabled: bool | None = None
    tags: str = ""
    page: int = 1
    size: int = 10
    sort: str = ""

    @field_validator("name")
    @classmethod
    def validate_name_pattern(cls, v: str) -> str:
        """Reject patterns the database regexp function cannot compile."""
        try:
            re.compile(f"(?i){v}")
        except re.error as exc:
            raise ValueError(f"name is not a valid regular expression: {exc}") from exc
        return v


# ── Responses ────────────────────────────────────────────────────────


class LobbyServerResponse(BaseModel):
    """A server from the current snapshot."""

    row_id: str
    steam_clan_id: str
    address: str
    port: int
    host: str
    region: str
    continent: str
    area: str
    city: str
    platform: int
    platform_name: str
    version: int
    name: str
    game_mode: str
    intent: str
    season: str
    tags: list[str]
    max_players: int
    online: int
    mod: bool
    pvp: bool
    has_password: bool
    is_dedicated: bool
    client_hosted: bool
    allow_new_players: bool
    server_paused: bool
    friend_only: bool
    clan_only: bool


class LobbyServerPageResponse(BaseModel):
    """Response for GET /v1/lobby/list."""

    total: int
    list: list[LobbyServerResponse]


class LobbyServerDetailResponse(LobbyServerResponse):
    """Response for GET /v1/lobby/details."""

    details: dict
