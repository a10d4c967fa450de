"""Lobby endpoints: paged snapshot queries and live server details."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from lobbytracker.dependencies import get_lobby_service
from lobbytracker.errors import ServerNotFound
from lobbytracker.models.lobby_server import LobbyServer
from lobbytracker.schemas.lobby import (
    LobbyServerDetailResponse,
    LobbyServerPageResponse,
    LobbyServerQuery,
    LobbyServerResponse,
)
from lobbytracker.services.lobby import LobbyService

router = APIRouter(prefix="/v1/lobby", tags=["lobby"])


def lobby_server_to_response(server: LobbyServer) -> LobbyServerResponse:
    return LobbyServerResponse(
        row_id=server.row_id,
        steam_clan_id=server.steam_clan_id,
        address=server.address,
        port=server.port,
        host=server.host,
        region=server.region,
        continent=server.continent,
        area=server.area,
        city=server.city,
        platform=server.platform,
        platform_name=server.platform_name,
        version=server.version,
        name=server.name,
        game_mode=server.game_mode,
        intent=server.intent,
        season=server.season,
        tags=server.tag_names or [],
        max_players=server.max_connections,
        online=server.connected,
        mod=server.mod_enabled,
        pvp=server.pvp_enabled,
        has_password=server.has_password,
        is_dedicated=server.is_dedicated,
        client_hosted=server.client_hosted,
        allow_new_players=server.allow_new_players,
        server_paused=server.server_paused,
        friend_only=server.friend_only,
        clan_only=server.clan_only,
    )


@router.get("/list", response_model=LobbyServerPageResponse)
async def list_servers(
    service: LobbyService = Depends(get_lobby_service),
    name: str = Query(default="", max_length=128),
    address: str = Query(default=""),
    area: str = Query(default=""),
    intent: str = Query(default=""),
    game_mode: str = Query(default=""),
    pvp_enabled: bool | None = Query(default=None),
    has_password: bool | None = Query(default=None),
    mod_enabled: bool | None = Query(default=None),
    tags: str = Query(default=""),
    page: int = Query(default=1),
    size: int = Query(default=10, le=100),
    sort: str = Query(default=""),
) -> LobbyServerPageResponse:
    """Page through the most recently collected lobby snapshot.

    ``total`` counts every listing in the snapshot; servers listed under
    several regions or platforms appear once in ``list``. Servers come in
    collection order unless ``sort`` names a known column.
    """
    try:
        query = LobbyServerQuery(
            name=name,
            address=address,
            area=area,
            intent=intent,
            game_mode=game_mode,
            pvp_enabled=pvp_enabled,
            has_password=has_password,
            mod_enabled=mod_enabled,
            tags=tags,
            page=page,
            size=size,
            sort=sort,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.errors()[0]["msg"],
        )

    result = await service.get_servers_by_page(query)

    return LobbyServerPageResponse(
        total=result.total,
        list=[lobby_server_to_response(s) for s in result.items],
    )


@router.get("/details", response_model=LobbyServerDetailResponse)
async def server_details(
    region: str = Query(min_length=1, max_length=32),
    row_id: str = Query(min_length=1, max_length=64),
    service: LobbyService = Depends(get_lobby_service),
) -> LobbyServerDetailResponse:
    """Live details of one server, read straight from the lobby."""
    try:
        server, details = await service.get_server_details(region, row_id)
    except ServerNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Lobby server not found",
        )

    return LobbyServerDetailResponse(
        **lobby_server_to_response(server).model_dump(),
        details=details,
    )
