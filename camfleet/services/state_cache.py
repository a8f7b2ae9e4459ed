# camfleet/services/state_cache.py
"""
Domain state cache: the in-memory snapshot every view is derived from.

refresh() refetches divisions, devices, channels and layouts wholesale and swaps
the snapshot in one assignment. It runs after every mutation and on every
change-feed notification; overlapping refreshes are harmless, the last one wins.
A failed read keeps the previous snapshot (empty at startup) instead of raising.
"""

from typing import Optional
from camfleet.config import settings
from camfleet.errors import GatewayError
from camfleet.schemas.channel import ChannelOut
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut
from camfleet.schemas.layout import DivisionLayout
from camfleet.services.gateway import Gateway
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)


class StateCache:
    def __init__(self, gateway: Gateway):
        self._gateway = gateway
        self.divisions: list[DivisionOut] = []
        self.devices: list[DeviceOut] = []
        self.layouts: list[DivisionLayout] = []
        self.loaded = False
        self.realtime_connected = False
        self._subscription = None

    async def refresh(self) -> bool:
        try:
            division_rows = await self._gateway.list("divisions", order_by="name")
            device_rows = await self._gateway.list("devices", order_by="name")
            channel_rows = await self._gateway.list("channels", order_by="name")
            layout_rows = await self._gateway.list("layouts")
        except GatewayError as e:
            logger.error(f"[CACHE] Refresh failed, keeping previous snapshot: {e.message}")
            return False

        channels_by_device: dict[int, list[ChannelOut]] = {}
        for row in channel_rows:
            channels_by_device.setdefault(row["device_id"], []).append(ChannelOut.model_validate(row))

        divisions = [DivisionOut.model_validate(row) for row in division_rows]
        devices = [
            DeviceOut.model_validate({**row, "channels": channels_by_device.get(row["id"], [])})
            for row in device_rows
        ]
        layouts = [DivisionLayout.model_validate(row) for row in layout_rows]

        self.divisions, self.devices, self.layouts = divisions, devices, layouts
        self.loaded = True
        logger.debug(f"[CACHE] Snapshot: {len(divisions)} divisions, {len(devices)} devices, "
                     f"{len(channel_rows)} channels, {len(layouts)} layouts")
        return True

    # ── Change feed ───────────────────────────────────────────────────────

    def start(self, tables: Optional[list] = None):
        """Subscribe to the change feed; on failure the dashboard stays on manual refresh."""
        try:
            self._subscription = self._gateway.subscribe_to_changes(
                tables or settings.WATCHED_TABLES, self._on_change)
            self.realtime_connected = True
        except Exception as e:
            self.realtime_connected = False
            logger.warning(f"[REALTIME] Subscription failed ({e}). "
                           f"Changes made elsewhere need a manual refresh.")

    def stop(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.realtime_connected = False

    async def _on_change(self, notification):
        logger.info(f"[REALTIME] {notification.event} on {notification.table}")
        await self.refresh()

    # ── Lookups ───────────────────────────────────────────────────────────

    def find_division(self, division_id: int) -> Optional[DivisionOut]:
        return next((d for d in self.divisions if d.id == division_id), None)

    def find_device(self, device_id: int) -> Optional[DeviceOut]:
        return next((d for d in self.devices if d.id == device_id), None)

    def find_channel(self, channel_id: int) -> Optional[tuple[ChannelOut, DeviceOut]]:
        for device in self.devices:
            for channel in device.channels:
                if channel.id == channel_id:
                    return channel, device
        return None

    def fresh_channel(self, stale: ChannelOut) -> ChannelOut:
        """Latest copy of a channel, or the stale one if it was deleted meanwhile."""
        found = self.find_channel(stale.id)
        return found[0] if found else stale

    def layout_for(self, division_id: int) -> DivisionLayout:
        """Persisted layout of a division, or an empty unsaved default."""
        layout = next((item for item in self.layouts if item.division_id == division_id), None)
        return layout or DivisionLayout(division_id=division_id)
