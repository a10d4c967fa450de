"""Tests for lobbytracker.services.lobby (sync, expiry and details)."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from lobbytracker.db.snapshot_store import SnapshotStore
from lobbytracker.errors import (
    EnrichmentFailure,
    InvalidResult,
    PersistenceFailure,
    UpstreamUnavailable,
)
from lobbytracker.models.lobby_server import LobbyServer
from lobbytracker.schemas.lobby import LobbyServerDetails, LobbyServerQuery, Platform
from lobbytracker.services.lobby import LobbyService
from tests.fakes import FakeLobby, FakeLocator, make_record


def _scenario_lobby() -> FakeLobby:
    return FakeLobby(
        regions=["US", "EU"],
        listings={
            ("US", Platform.STEAM): [make_record("42", name="Shared")],
            ("US", Platform.PSN): [make_record("us-psn", name="Beta")],
            ("EU", Platform.STEAM): [make_record("eu-steam", name="Alpha")],
            ("EU", Platform.PSN): [make_record("42", name="Shared")],
        },
    )


async def _row_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(LobbyServer))


class TestSyncLocalServers:
    @pytest.mark.asyncio
    async def test_scenario_total_four_three_distinct(self, session_factory):
        lobby = _scenario_lobby()

        async with session_factory() as session:
            service = LobbyService(SnapshotStore(session), lobby, FakeLocator())
            inserted = await service.sync_local_servers(4)
            await session.commit()

        assert inserted == 4

        async with session_factory() as session:
            service = LobbyService(SnapshotStore(session), lobby, FakeLocator())
            page = await service.get_servers_by_page(LobbyServerQuery(page=1, size=10, sort="name"))

        assert page.total == 4
        assert sorted(s.row_id for s in page.items) == ["42", "eu-steam", "us-psn"]
        assert [s.name for s in page.items] == ["Alpha", "Beta", "Shared"]

    @pytest.mark.asyncio
    async def test_every_inserted_record_shares_created_at(self, session_factory):
        lobby = FakeLobby(
            regions=["us-east-1", "eu-central-1"],
            listings={
                ("us-east-1", Platform.STEAM): [make_record("1"), make_record("2")],
                ("eu-central-1", Platform.SWITCH): [make_record("3")],
            },
        )
        async with session_factory() as session:
            await LobbyService(SnapshotStore(session), lobby, FakeLocator()).sync_local_servers(3)
            await session.commit()

        async with session_factory() as session:
            stamps = (await session.execute(select(LobbyServer.created_at).distinct())).scalars().all()
        assert len(stamps) == 1

    @pytest.mark.asyncio
    async def test_failed_listing_persists_nothing(self, session_factory):
        lobby = _scenario_lobby()
        lobby.failures[("EU", Platform.STEAM)] = UpstreamUnavailable("down")

        async with session_factory() as session:
            service = LobbyService(SnapshotStore(session), lobby, FakeLocator())
            with pytest.raises(UpstreamUnavailable):
                await service.sync_local_servers(4)

        assert await _row_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_failed_enrichment_persists_nothing(self, session_factory):
        lobby = _scenario_lobby()
        lobby.listings[("US", Platform.PSN)] = [make_record("bad", address="10.0.0.1")]

        async with session_factory() as session:
            service = LobbyService(
                SnapshotStore(session), lobby, FakeLocator(unresolvable={"10.0.0.1"})
            )
            with pytest.raises(EnrichmentFailure):
                await service.sync_local_servers(4)

        assert await _row_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_failed_insert_persists_nothing(self, session_factory, monkeypatch):
        async def broken_insert(self, servers):
            raise PersistenceFailure("disk full")

        monkeypatch.setattr(SnapshotStore, "insert_many", broken_insert)

        async with session_factory() as session:
            service = LobbyService(SnapshotStore(session), _scenario_lobby(), FakeLocator())
            with pytest.raises(PersistenceFailure, match="disk full"):
                await service.sync_local_servers(4)

        assert await _row_count(session_factory) == 0


class TestGetAllServersFromLobby:
    @pytest.mark.asyncio
    async def test_does_not_store(self, session_factory, db_session):
        lobby = FakeLobby(regions=["us-east-1"], listings={("us-east-1", Platform.STEAM): [make_record("1")]})
        service = LobbyService(SnapshotStore(db_session), lobby, FakeLocator())

        servers = await service.get_all_servers_from_lobby(2)

        assert [s.row_id for s in servers] == ["1"]
        assert await _row_count(session_factory) == 0


class TestClearExpiredServers:
    @pytest.mark.asyncio
    async def test_removes_old_snapshots(self, seed_snapshot, db_session):
        await seed_snapshot(1_000, [("us-east-1", make_record("ancient"))])
        await seed_snapshot(2**53, [("us-east-1", make_record("future"))])

        service = LobbyService(SnapshotStore(db_session), FakeLobby(), FakeLocator())
        deleted, remaining = await service.clear_expired_servers(timedelta(days=3))

        assert (deleted, remaining) == (1, 1)


class TestGetServerDetails:
    @pytest.mark.asyncio
    async def test_enriches_the_live_record(self, db_session):
        lobby = FakeLobby()
        lobby.details[("ap-east-1", "KU_1")] = LobbyServerDetails(
            server=make_record("KU_1", platform=int(Platform.RAIL), tags="休闲"),
            details={"players": "return {}"},
        )
        service = LobbyService(SnapshotStore(db_session), lobby, FakeLocator())

        server, details = await service.get_server_details("ap-east-1", "KU_1")

        assert server.platform_name == "WeGame"
        assert server.region == "ap-east-1"
        assert server.created_at == 0
        assert server.tag_names == ["休闲"]
        assert details == {"players": "return {}"}

    @pytest.mark.asyncio
    async def test_unresolvable_address_propagates(self, db_session):
        lobby = FakeLobby()
        lobby.details[("us-east-1", "KU_1")] = LobbyServerDetails(
            server=make_record("KU_1", address="10.0.0.1")
        )
        service = LobbyService(
            SnapshotStore(db_session), lobby, FakeLocator(unresolvable={"10.0.0.1"})
        )
        with pytest.raises(EnrichmentFailure):
            await service.get_server_details("us-east-1", "KU_1")

    @pytest.mark.asyncio
    async def test_empty_enrichment_is_invalid_result(self, db_session, monkeypatch):
        monkeypatch.setattr("lobbytracker.services.lobby.enrich_batch", lambda *args: [])
        lobby = FakeLobby()
        lobby.details[("us-east-1", "KU_1")] = LobbyServerDetails(server=make_record("KU_1"))
        service = LobbyService(SnapshotStore(db_session), lobby, FakeLocator())

        with pytest.raises(InvalidResult):
            await service.get_server_details("us-east-1", "KU_1")
