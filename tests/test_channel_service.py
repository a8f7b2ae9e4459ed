# tests/test_channel_service.py
"""Unit tests for channel management, corrective actions and the logbook."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, AsyncMock
from camfleet.errors import ConfirmationRequired, GatewayError, NotFound, OperationFailed, ValidationFailed
from camfleet.models.enums import ActionType, CameraStatus
from camfleet.schemas.channel import ChannelOut
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut
from camfleet.services import channel_service, logbook_service
from camfleet.services.channel_service import next_cam_names
from camfleet.services.state_cache import StateCache


def make_gateway():
    gateway = MagicMock()
    gateway.insert = AsyncMock(side_effect=lambda table, rows: [{"id": 10, **(rows if isinstance(rows, dict) else rows[0])}])
    gateway.update = AsyncMock(return_value={})
    gateway.delete = AsyncMock()
    gateway.get = AsyncMock()
    gateway.list = AsyncMock(return_value=[])
    return gateway


def make_cache(gateway, channel_names=("Cam 1", "Cam 2"), channel_count=16):
    channels = [ChannelOut(id=i + 1, device_id=1, name=name, status="Online")
                for i, name in enumerate(channel_names)]
    cache = StateCache(gateway)
    cache.divisions = [DivisionOut(id=1, name="Matriz")]
    cache.devices = [DeviceOut(id=1, name="NVR-01", location="Portaria", type="NVR", division_id=1,
                               channel_count=channel_count, channels=channels)]
    cache.refresh = AsyncMock(return_value=True)
    return cache


class TestCamNames:
    def test_continues_after_highest(self):
        assert next_cam_names(["Cam 2", "cam7", "Entrada", "CAM 03"], 3) == ["Cam 8", "Cam 9", "Cam 10"]

    def test_starts_at_one(self):
        assert next_cam_names(["Entrada", "Cam", "Cam 0"], 2) == ["Cam 1", "Cam 2"]


class TestChannelManagement:
    @pytest.mark.asyncio
    async def test_auto_create_fills_capacity(self):
        gateway = make_gateway()
        cache = make_cache(gateway, ("Cam 1", "Cam 5"))
        created = await channel_service.auto_create_channels(gateway, cache, 1, confirm=True)

        assert created == 14
        rows = gateway.insert.call_args.args[1]
        assert [r["name"] for r in rows][:2] == ["Cam 6", "Cam 7"]
        assert rows[-1]["name"] == "Cam 19"
        assert all(r["status"] == "Online" and r["device_id"] == 1 for r in rows)
        cache.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_auto_create_needs_confirmation(self):
        gateway = make_gateway()
        with pytest.raises(ConfirmationRequired) as exc:
            await channel_service.auto_create_channels(gateway, make_cache(gateway), 1)
        assert "criar 14 câmeras" in exc.value.message
        gateway.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_auto_create_on_full_device(self):
        gateway = make_gateway()
        cache = make_cache(gateway, [f"Cam {i}" for i in range(1, 17)])
        with pytest.raises(ValidationFailed, match="Não há canais disponíveis"):
            await channel_service.auto_create_channels(gateway, cache, 1, confirm=True)

    @pytest.mark.asyncio
    async def test_add_channel_respects_capacity(self):
        gateway = make_gateway()
        cache = make_cache(gateway, [f"Cam {i}" for i in range(1, 17)])
        with pytest.raises(ValidationFailed, match="limite de 16 canais"):
            await channel_service.add_channel(gateway, cache, 1, "Extra")

    @pytest.mark.asyncio
    async def test_add_channel_starts_online(self):
        gateway = make_gateway()
        channel = await channel_service.add_channel(gateway, make_cache(gateway), 1, "  Doca  ")
        gateway.insert.assert_awaited_once_with("channels", {"device_id": 1, "name": "Doca", "status": "Online"})
        assert channel.name == "Doca"

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self):
        gateway = make_gateway()
        with pytest.raises(ValidationFailed):
            await channel_service.rename_channel(gateway, make_cache(gateway), 1, "   ")

    @pytest.mark.asyncio
    async def test_delete_channel_confirmation_then_delete(self):
        gateway = make_gateway()
        cache = make_cache(gateway)
        with pytest.raises(ConfirmationRequired):
            await channel_service.delete_channel(gateway, cache, 1)
        await channel_service.delete_channel(gateway, cache, 1, confirm=True)
        gateway.delete.assert_awaited_once_with("channels", 1)

    @pytest.mark.asyncio
    async def test_unknown_channel(self):
        gateway = make_gateway()
        with pytest.raises(NotFound):
            await channel_service.delete_channel(gateway, make_cache(gateway), 99, confirm=True)

    @pytest.mark.asyncio
    async def test_policy_error_on_delete(self):
        gateway = make_gateway()
        gateway.delete.side_effect = GatewayError("permission denied for table channels", "42501")
        with pytest.raises(OperationFailed) as exc:
            await channel_service.delete_channel(gateway, make_cache(gateway), 1, confirm=True)
        assert exc.value.kind == "policy"


class TestStatusWorkflow:
    @pytest.mark.asyncio
    async def test_take_action_sets_offline_and_logs(self):
        gateway = make_gateway()
        cache = make_cache(gateway)
        await channel_service.take_action(gateway, cache, 1, ActionType.OBRAS, "")

        gateway.update.assert_awaited_once_with("channels", 1, {
            "action_taken": "Chamado para Obras", "action_notes": "", "status": "Offline",
        })
        gateway.insert.assert_awaited_once_with("channel_logs", {
            "channel_id": 1, "log_entry": "Ação registrada sem notas.",
            "new_status": "Offline", "action_taken": "Chamado para Obras",
        })
        cache.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_log_failure_does_not_fail_action(self):
        gateway = make_gateway()
        gateway.insert.side_effect = GatewayError("insert blocked")
        cache = make_cache(gateway)
        await channel_service.take_action(gateway, cache, 1, ActionType.RIF, "Cabo rompido")
        cache.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_restoring_online_clears_action(self):
        gateway = make_gateway()
        await channel_service.change_status(gateway, make_cache(gateway), 1, CameraStatus.ONLINE)
        gateway.update.assert_awaited_once_with("channels", 1, {
            "status": "Online", "action_taken": None, "action_notes": None,
        })
        row = gateway.insert.call_args.args[1]
        assert row["log_entry"] == "Câmera foi restaurada para o status Online."
        assert row["new_status"] == "Online"

    @pytest.mark.asyncio
    async def test_setting_offline_changes_status_only(self):
        gateway = make_gateway()
        await channel_service.change_status(gateway, make_cache(gateway), 1, CameraStatus.OFFLINE)
        gateway.update.assert_awaited_once_with("channels", 1, {"status": "Offline"})
        gateway.insert.assert_not_called()


class TestLogbook:
    @pytest.mark.asyncio
    async def test_list_newest_first_and_read_failure(self):
        gateway = make_gateway()
        await logbook_service.list_logs(gateway, 1)
        gateway.list.assert_awaited_once_with("channel_logs", order_by="created_at", descending=True, channel_id=1)

        gateway.list.side_effect = GatewayError("timeout")
        assert await logbook_service.list_logs(gateway, 1) == []

    @pytest.mark.asyncio
    async def test_empty_note_rejected(self):
        gateway = make_gateway()
        with pytest.raises(ValidationFailed, match="não pode estar vazia"):
            await logbook_service.add_note(gateway, make_cache(gateway), 1, "   ")
        gateway.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_note_is_trimmed(self):
        gateway = make_gateway()
        gateway.get.return_value = {"id": 5, "channel_id": 1, "log_entry": "old"}
        gateway.update.return_value = {"id": 5, "channel_id": 1, "log_entry": "nova"}
        await logbook_service.update_note(gateway, make_cache(gateway), 5, "  nova  ")
        gateway.update.assert_awaited_once_with("channel_logs", 5, {"log_entry": "nova"})

    @pytest.mark.asyncio
    async def test_system_events_are_immutable(self):
        gateway = make_gateway()
        gateway.get.return_value = {"id": 5, "channel_id": 1, "log_entry": "x", "new_status": "Offline"}
        with pytest.raises(ValidationFailed):
            await logbook_service.delete_note(gateway, make_cache(gateway), 5, confirm=True)
        gateway.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_note_requires_confirmation(self):
        gateway = make_gateway()
        gateway.get.return_value = {"id": 5, "channel_id": 1, "log_entry": "x"}
        with pytest.raises(ConfirmationRequired):
            await logbook_service.delete_note(gateway, make_cache(gateway), 5)
        await logbook_service.delete_note(gateway, make_cache(gateway), 5, confirm=True)
        gateway.delete.assert_awaited_once_with("channel_logs", 5)
