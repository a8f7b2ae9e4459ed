# camfleet/services/layout_service.py
"""
Floor-plan layout editor.

Each division has one canvas: a background image (with its rotation) and the
cameras placed on it. Marker coordinates are percentages of the canvas, computed
from the pointer position relative to the canvas bounding box, so they survive
canvas resizes but not a different background image.

States follow from the data:
  no background → background, no cameras → background with cameras (locked)
While locked, the background cannot be replaced or rotated; all cameras must be
removed first.

Background replace runs in three ordered phases:
  1. upload the new image under public/division-<id>-layout-<ms>.<ext>
  2. save the layout: new url, rotation 0, no cameras
  3. delete the old image, best effort: failures are only logged
The layout row is saved before the old blob goes, so a crash in between only
leaves an orphan file behind, never a layout pointing at a deleted image.
"""

import re
import time
from typing import Callable, Optional
from camfleet.config import settings
from camfleet.errors import (
    GatewayError, LayoutLocked, StorageError, UploadFailed, ValidationFailed, failure_from_gateway,
)
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut
from camfleet.schemas.layout import (
    Bounds, DivisionLayout, LayoutView, MarkerView, PlacedCamera, Point, SidebarChannel,
    SidebarDevice, clamp_percent,
)
from camfleet.services.blob_storage import BlobStorage, object_path_from_url
from camfleet.services.gateway import Gateway
from camfleet.services.state_cache import StateCache
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

MARKER_ROTATION_STEP = 45
BACKGROUND_ROTATION_STEP = 90
LOCKED_MESSAGE = "Remova todas as câmeras do layout antes de trocar ou girar a imagem de fundo."
IMAGE_EXTENSION = re.compile(r"[a-z0-9]{1,5}")


# ── Geometry ─────────────────────────────────────────────────────────────────

def pointer_to_percent(pointer: Optional[Point],
                       bounds: Optional[Bounds]) -> Optional[tuple[float, float]]:
    """Pointer position as clamped canvas percentages; None without usable bounds."""
    if pointer is None or bounds is None or bounds.width <= 0 or bounds.height <= 0:
        return None
    x = (pointer.x - bounds.left) / bounds.width * 100
    y = (pointer.y - bounds.top) / bounds.height * 100
    return clamp_percent(x), clamp_percent(y)


# ── Pure layout transitions ──────────────────────────────────────────────────
# Each returns a new DivisionLayout, or the same object when nothing changes.

def _with_cameras(layout: DivisionLayout, cameras: list[PlacedCamera]) -> DivisionLayout:
    return layout.model_copy(update={"placed_cameras": cameras})


def _update_camera(layout: DivisionLayout, channel_id: int, **changes) -> DivisionLayout:
    current = layout.placement_for(channel_id)
    if current is None:
        return layout
    updated = current.model_copy(update=changes)
    return _with_cameras(layout, [updated if pc.channel_id == channel_id else pc
                                  for pc in layout.placed_cameras])


def place_camera(layout: DivisionLayout, device_id: int, channel_id: int,
                 x: float, y: float) -> DivisionLayout:
    if layout.placement_for(channel_id) is not None:
        return layout
    camera = PlacedCamera(channel_id=channel_id, device_id=device_id,
                          x=clamp_percent(x), y=clamp_percent(y), rotation=0, flipped=False)
    return _with_cameras(layout, [*layout.placed_cameras, camera])


def move_camera(layout: DivisionLayout, channel_id: int, x: float, y: float) -> DivisionLayout:
    return _update_camera(layout, channel_id, x=clamp_percent(x), y=clamp_percent(y))


def rotate_camera(layout: DivisionLayout, channel_id: int) -> DivisionLayout:
    current = layout.placement_for(channel_id)
    if current is None:
        return layout
    return _update_camera(layout, channel_id,
                          rotation=(current.rotation + MARKER_ROTATION_STEP) % 360)


def flip_camera(layout: DivisionLayout, channel_id: int) -> DivisionLayout:
    current = layout.placement_for(channel_id)
    if current is None:
        return layout
    return _update_camera(layout, channel_id, flipped=not current.flipped)


def remove_camera(layout: DivisionLayout, channel_id: int) -> DivisionLayout:
    if layout.placement_for(channel_id) is None:
        return layout
    return _with_cameras(layout, [pc for pc in layout.placed_cameras if pc.channel_id != channel_id])


def rotate_background(layout: DivisionLayout, degrees: int) -> DivisionLayout:
    if layout.is_locked:
        raise LayoutLocked(LOCKED_MESSAGE)
    return layout.model_copy(update={"background_rotation": (layout.background_rotation + degrees + 360) % 360})


def reset_background_rotation(layout: DivisionLayout) -> DivisionLayout:
    if layout.is_locked:
        raise LayoutLocked(LOCKED_MESSAGE)
    return layout.model_copy(update={"background_rotation": 0})


# ── View models ──────────────────────────────────────────────────────────────

def select_division(divisions: list[DivisionOut], selected_id: Optional[int]) -> Optional[int]:
    """Keep the selection while it exists, otherwise fall back to the first division."""
    if selected_id is not None and any(d.id == selected_id for d in divisions):
        return selected_id
    return divisions[0].id if divisions else None


def marker_views(layout: DivisionLayout, devices: list[DeviceOut]) -> list[MarkerView]:
    """Placed cameras joined to their channel; dangling placements are not rendered."""
    channels = {c.id: (c, d) for d in devices for c in d.channels}
    views = []
    for placement in layout.placed_cameras:
        found = channels.get(placement.channel_id)
        if found is None:
            continue
        channel, device = found
        views.append(MarkerView(placement=placement, channel=channel, device_name=device.name))
    return views


def sidebar_devices(layout: DivisionLayout, devices: list[DeviceOut]) -> list[SidebarDevice]:
    placed = {pc.channel_id for pc in layout.placed_cameras}
    return [
        SidebarDevice(
            id=device.id, name=device.name, location=device.location,
            channels=[SidebarChannel(channel=c, placed=c.id in placed) for c in device.channels],
        )
        for device in devices if device.division_id == layout.division_id
    ]


# ── Editor ───────────────────────────────────────────────────────────────────

class DragSession:
    """
    A marker being dragged: every pointer sample updates a transient copy,
    release() commits the last position once.
    """

    def __init__(self, editor: "LayoutEditor", division_id: int, marker: PlacedCamera):
        self.editor = editor
        self.division_id = division_id
        self.marker = marker

    def drag_to(self, pointer: Optional[Point], bounds: Optional[Bounds]) -> PlacedCamera:
        position = pointer_to_percent(pointer, bounds)
        if position is not None:
            self.marker = self.marker.model_copy(update={"x": position[0], "y": position[1]})
        return self.marker

    async def release(self) -> DivisionLayout:
        return await self.editor.move(self.division_id, self.marker.channel_id,
                                      self.marker.x, self.marker.y)


class LayoutEditor:
    def __init__(self, gateway: Gateway, storage: BlobStorage, cache: StateCache,
                 bucket: Optional[str] = None, clock: Callable[[], float] = time.time):
        self._gateway = gateway
        self._storage = storage
        self._cache = cache
        self.bucket = bucket or settings.LAYOUT_BUCKET
        self._clock = clock

    def layout_for(self, division_id: int) -> DivisionLayout:
        return self._cache.layout_for(division_id)

    def view(self, division_id: int) -> LayoutView:
        layout = self.layout_for(division_id)
        return LayoutView(
            layout=layout,
            locked=layout.is_locked,
            markers=marker_views(layout, self._cache.devices),
            sidebar=sidebar_devices(layout, self._cache.devices),
        )

    async def _save(self, layout: DivisionLayout, patch: dict) -> DivisionLayout:
        if "placed_cameras" in patch:
            patch = {**patch, "placed_cameras": [pc.model_dump(by_alias=True)
                                                 for pc in patch["placed_cameras"]]}
        try:
            if layout.is_persisted:
                await self._gateway.upsert_layout(layout.division_id, patch)
            else:
                await self._gateway.insert("layouts", {"division_id": layout.division_id, **patch})
        except GatewayError as e:
            logger.error(f"[LAYOUT] Save failed for division {layout.division_id}: {e.message}")
            raise failure_from_gateway(e, "Erro ao salvar o layout.", "layouts")
        await self._cache.refresh()
        return self.layout_for(layout.division_id)

    async def _save_cameras(self, before: DivisionLayout, after: DivisionLayout) -> DivisionLayout:
        if after is before:
            return before
        return await self._save(before, {"placed_cameras": after.placed_cameras})

    async def place(self, division_id: Optional[int], device_id: int, channel_id: int,
                    pointer: Optional[Point], bounds: Optional[Bounds]) -> Optional[DivisionLayout]:
        """Drop gesture: pointer position relative to the canvas box."""
        position = pointer_to_percent(pointer, bounds)
        if position is None:
            logger.debug(f"[LAYOUT] Drop of channel {channel_id} ignored: no canvas bounds")
            return self.layout_for(division_id) if division_id is not None else None
        return await self.place_at(division_id, device_id, channel_id, *position)

    async def place_at(self, division_id: Optional[int], device_id: int, channel_id: int,
                       x: float, y: float) -> Optional[DivisionLayout]:
        if division_id is None:
            logger.debug("[LAYOUT] Drop ignored: no division selected")
            return None
        layout = self.layout_for(division_id)
        position = (clamp_percent(x), clamp_percent(y))
        if layout.placement_for(channel_id) is not None:
            logger.debug(f"[LAYOUT] Channel {channel_id} already placed on division {division_id}")
            return layout
        updated = place_camera(layout, device_id, channel_id, *position)
        logger.info(f"[LAYOUT] Placed channel {channel_id} on division {division_id} "
                    f"at ({position[0]:.1f}%, {position[1]:.1f}%)")
        return await self._save_cameras(layout, updated)

    def begin_drag(self, division_id: int, channel_id: int) -> Optional[DragSession]:
        marker = self.layout_for(division_id).placement_for(channel_id)
        if marker is None:
            return None
        return DragSession(self, division_id, marker)

    async def move(self, division_id: int, channel_id: int, x: float, y: float) -> DivisionLayout:
        layout = self.layout_for(division_id)
        return await self._save_cameras(layout, move_camera(layout, channel_id, x, y))

    async def rotate(self, division_id: int, channel_id: int) -> DivisionLayout:
        layout = self.layout_for(division_id)
        return await self._save_cameras(layout, rotate_camera(layout, channel_id))

    async def flip(self, division_id: int, channel_id: int) -> DivisionLayout:
        layout = self.layout_for(division_id)
        return await self._save_cameras(layout, flip_camera(layout, channel_id))

    async def remove(self, division_id: int, channel_id: int) -> DivisionLayout:
        layout = self.layout_for(division_id)
        return await self._save_cameras(layout, remove_camera(layout, channel_id))

    async def clear_cameras(self, division_id: int) -> DivisionLayout:
        """Remove every placed camera, unlocking the background."""
        layout = self.layout_for(division_id)
        if not layout.placed_cameras:
            return layout
        logger.info(f"[LAYOUT] Clearing {len(layout.placed_cameras)} cameras from division {division_id}")
        return await self._save(layout, {"placed_cameras": []})

    async def rotate_background(self, division_id: int, degrees: int) -> DivisionLayout:
        if degrees not in (BACKGROUND_ROTATION_STEP, -BACKGROUND_ROTATION_STEP):
            raise ValidationFailed("A imagem de fundo gira apenas em passos de 90 graus.")
        layout = self.layout_for(division_id)
        rotated = rotate_background(layout, degrees)
        return await self._save(layout, {"background_rotation": rotated.background_rotation})

    async def reset_background_rotation(self, division_id: int) -> DivisionLayout:
        layout = self.layout_for(division_id)
        reset_background_rotation(layout)
        return await self._save(layout, {"background_rotation": 0})

    def new_image_path(self, division_id: int, filename: str) -> str:
        """Object key for a new background; unusable extensions fall back to png."""
        extension = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
        if not IMAGE_EXTENSION.fullmatch(extension):
            extension = "png"
        return f"public/division-{division_id}-layout-{int(self._clock() * 1000)}.{extension}"

    async def replace_background(self, division_id: int, filename: str, data: bytes,
                                 content_type: Optional[str] = None) -> DivisionLayout:
        layout = self.layout_for(division_id)
        if layout.is_locked:
            raise LayoutLocked(LOCKED_MESSAGE)

        old_path = object_path_from_url(layout.background_image_url, self.bucket)
        new_path = self.new_image_path(division_id, filename)

        # Phase 1: upload
        try:
            await self._storage.upload(self.bucket, new_path, data, content_type)
        except StorageError as e:
            failure = UploadFailed.from_storage_error(e)
            logger.error(f"[LAYOUT] Upload of {new_path} failed ({failure.kind}): {e}")
            raise failure

        public_url = self._storage.get_public_url(self.bucket, new_path)
        if not public_url:
            try:
                await self._storage.remove(self.bucket, [new_path])
            except StorageError as e:
                logger.warning(f"[LAYOUT] Could not remove unreferenced upload {new_path}: {e}")
            raise UploadFailed("url", new_path)

        # Phase 2: point the layout at the new image; coordinates no longer apply
        saved = await self._save(layout, {
            "background_image_url": public_url,
            "background_rotation": 0,
            "placed_cameras": [],
        })
        logger.info(f"[LAYOUT] Division {division_id} background replaced with {new_path}")

        # Phase 3: old image cleanup, never surfaced to the user
        if old_path and old_path != new_path:
            try:
                await self._storage.remove(self.bucket, [old_path])
            except StorageError as e:
                logger.warning(f"[LAYOUT] Cleanup failed, old layout image kept: {old_path} ({e})")
        return saved
