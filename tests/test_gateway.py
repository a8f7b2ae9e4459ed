# tests/test_gateway.py
"""Gateway and state cache tests against an in-memory SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from camfleet.database import create_tables
from camfleet.errors import FOREIGN_KEY_VIOLATION, GatewayError, UNIQUE_VIOLATION
from camfleet.services.gateway import SqlGateway
from camfleet.services.state_cache import StateCache


@pytest.fixture
def gateway():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_tables(bind=engine)
    yield SqlGateway(sessionmaker(bind=engine, autoflush=False))
    engine.dispose()


async def seed(gateway):
    division = (await gateway.insert("divisions", {"name": "Matriz"}))[0]
    device = (await gateway.insert("devices", {"name": "NVR-01", "location": "Portaria", "type": "NVR",
                                               "division_id": division["id"], "channel_count": 16}))[0]
    channels = await gateway.insert("channels", [
        {"device_id": device["id"], "name": "Cam 2", "status": "Online"},
        {"device_id": device["id"], "name": "Cam 1", "status": "Offline"},
    ])
    return division, device, channels


class TestSqlGateway:
    @pytest.mark.asyncio
    async def test_insert_and_ordered_list(self, gateway):
        _, device, _ = await seed(gateway)
        rows = await gateway.list("channels", order_by="name", device_id=device["id"])
        assert [r["name"] for r in rows] == ["Cam 1", "Cam 2"]
        assert rows[0]["created_at"] is not None

    @pytest.mark.asyncio
    async def test_duplicate_division_is_unique_violation(self, gateway):
        await gateway.insert("divisions", {"name": "Matriz"})
        with pytest.raises(GatewayError) as exc:
            await gateway.insert("divisions", {"name": "Matriz"})
        assert exc.value.code == UNIQUE_VIOLATION

    @pytest.mark.asyncio
    async def test_division_in_use_cannot_be_deleted(self, gateway):
        division, _, _ = await seed(gateway)
        with pytest.raises(GatewayError) as exc:
            await gateway.delete("divisions", division["id"])
        assert exc.value.code == FOREIGN_KEY_VIOLATION
        assert await gateway.get("divisions", division["id"]) is not None

    @pytest.mark.asyncio
    async def test_unknown_table_and_column(self, gateway):
        with pytest.raises(GatewayError) as exc:
            await gateway.list("cameras")
        assert exc.value.code == "42P01"
        with pytest.raises(GatewayError) as exc:
            await gateway.insert("divisions", {"title": "x"})
        assert exc.value.code == "42703"

    @pytest.mark.asyncio
    async def test_update_missing_row(self, gateway):
        with pytest.raises(GatewayError):
            await gateway.update("channels", 404, {"name": "x"})

    @pytest.mark.asyncio
    async def test_delete_missing_row_is_noop(self, gateway):
        await gateway.delete("channels", 404)

    @pytest.mark.asyncio
    async def test_upsert_layout_creates_then_updates(self, gateway):
        division, _, _ = await seed(gateway)
        created = await gateway.upsert_layout(division["id"], {"background_rotation": 90})
        updated = await gateway.upsert_layout(division["id"], {"background_image_url": "http://x/layouts/a.png"})
        assert created["id"] == updated["id"]
        assert updated["background_rotation"] == 90
        assert updated["placed_cameras"] == []

    @pytest.mark.asyncio
    async def test_deleting_channel_cascades_logs_and_placements(self, gateway):
        division, device, channels = await seed(gateway)
        doomed, kept = channels[0]["id"], channels[1]["id"]
        await gateway.insert("channel_logs", {"channel_id": doomed, "log_entry": "nota"})
        await gateway.upsert_layout(division["id"], {"placed_cameras": [
            {"channelId": doomed, "deviceId": device["id"], "x": 1, "y": 1, "rotation": 0, "flipped": False},
            {"channelId": kept, "deviceId": device["id"], "x": 2, "y": 2, "rotation": 0, "flipped": False},
        ]})

        await gateway.delete("channels", doomed)

        assert await gateway.list("channel_logs", channel_id=doomed) == []
        layout = (await gateway.list("layouts"))[0]
        assert [pc["channelId"] for pc in layout["placed_cameras"]] == [kept]

    @pytest.mark.asyncio
    async def test_deleting_device_cascades_channels(self, gateway):
        division, device, _ = await seed(gateway)
        await gateway.delete("devices", device["id"])
        assert await gateway.list("channels") == []
        await gateway.delete("divisions", division["id"])
        assert await gateway.list("divisions") == []

    @pytest.mark.asyncio
    async def test_writes_are_published(self, gateway):
        received = []
        subscription = gateway.subscribe_to_changes(["divisions"], received.append)
        await gateway.insert("divisions", {"name": "Matriz"})
        await gateway.insert("devices", {"name": "x", "location": "y", "division_id": 1})
        subscription.unsubscribe()
        await gateway.insert("divisions", {"name": "Fábrica"})
        assert [(n.table, n.event) for n in received] == [("divisions", "INSERT")]


class TestStateCache:
    @pytest.mark.asyncio
    async def test_refresh_builds_snapshot(self, gateway):
        division, device, _ = await seed(gateway)
        cache = StateCache(gateway)
        assert await cache.refresh() is True

        assert [d.name for d in cache.divisions] == ["Matriz"]
        assert [c.name for c in cache.devices[0].channels] == ["Cam 1", "Cam 2"]
        channel, owner = cache.find_channel(cache.devices[0].channels[0].id)
        assert owner.id == device["id"] and channel.status == "Offline"

    @pytest.mark.asyncio
    async def test_missing_layout_is_synthesized(self, gateway):
        division, _, _ = await seed(gateway)
        cache = StateCache(gateway)
        await cache.refresh()
        layout = cache.layout_for(division["id"])
        assert layout.id is None
        assert layout.background_image_url is None and layout.placed_cameras == []

    @pytest.mark.asyncio
    async def test_change_feed_triggers_refresh(self, gateway):
        cache = StateCache(gateway)
        cache.start()
        assert cache.realtime_connected
        await gateway.insert("divisions", {"name": "Matriz"})
        await gateway.feed.drain()
        assert [d.name for d in cache.divisions] == ["Matriz"]
        cache.stop()
        assert not cache.realtime_connected

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_snapshot(self, gateway):
        await seed(gateway)
        cache = StateCache(gateway)
        await cache.refresh()
        broken = MagicMock()
        broken.list = AsyncMock(side_effect=GatewayError("connection refused"))
        cache._gateway = broken
        assert await cache.refresh() is False
        assert len(cache.devices) == 1

    def test_subscription_failure_degrades_to_manual_refresh(self):
        broken = MagicMock()
        broken.subscribe_to_changes.side_effect = ConnectionError("realtime unavailable")
        cache = StateCache(broken)
        cache.start()
        assert cache.realtime_connected is False

    @pytest.mark.asyncio
    async def test_fresh_channel_falls_back_to_stale_copy(self, gateway):
        _, _, channels = await seed(gateway)
        cache = StateCache(gateway)
        await cache.refresh()
        stale = cache.devices[0].channels[0]
        await gateway.update("channels", stale.id, {"status": "Online"})
        await cache.refresh()
        assert cache.fresh_channel(stale).status == "Online"
        await gateway.delete("channels", stale.id)
        await cache.refresh()
        assert cache.fresh_channel(stale) is stale
