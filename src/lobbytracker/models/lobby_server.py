"""Lobby server model - one listing of one server within one snapshot."""

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lobbytracker.db.types import JSONType
from lobbytracker.models.base import Base


class LobbyServer(Base):
    __tablename__ = "lobby_servers"

    # Autoincrement id doubles as the insertion sequence used to pick
    # the representative listing of a row_id.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Provider identity
    row_id: Mapped[str] = mapped_column(String(64), nullable=False)
    steam_clan_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(64), nullable=False)
    port: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    host: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    # Descriptive
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    region: Mapped[str] = mapped_column(String(32), nullable=False)
    platform: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    platform_name: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    game_mode: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    intent: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    season: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tag_names: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Capacity and state
    max_connections: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    connected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pvp_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_password: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mod_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dedicated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    client_hosted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_new_players: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    server_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    friend_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    clan_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Geo, resolved from address
    continent: Mapped[str] = mapped_column(String(8), nullable=False)
    area: Mapped[str] = mapped_column(String(8), nullable=False)
    city: Mapped[str] = mapped_column(String(128), nullable=False)

    # Snapshot timestamp, epoch milliseconds
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    tag_rows: Mapped[list["LobbyServerTag"]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_lobby_servers_name", "name"),
        Index("ix_lobby_servers_area", "area"),
        Index("ix_lobby_servers_platform_name", "platform_name"),
        Index("ix_lobby_servers_created_at", "created_at"),
        Index("ix_lobby_servers_row_id", "row_id"),
        Index("ix_lobby_servers_game_mode", "game_mode"),
        Index("ix_lobby_servers_intent", "intent"),
    )


class LobbyServerTag(Base):
    """One tag of one listing, indexed for tag membership filters."""

    __tablename__ = "lobby_server_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lobby_servers.id", ondelete="CASCADE"), nullable=False
    )
    tag: Mapped[str] = mapped_column(String(64), nullable=False)

    server: Mapped["LobbyServer"] = relationship(back_populates="tag_rows")

    __table_args__ = (
        Index("ix_lobby_server_tags_tag", "tag"),
        Index("ix_lobby_server_tags_server_id", "server_id"),
    )
