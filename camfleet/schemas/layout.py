# camfleet/schemas/layout.py
"""
Floor-plan layout schemas.

`placed_cameras` is stored as free-form JSON, so it is coerced on the way in:
anything that is not a list becomes [], malformed markers are dropped and a
channel placed twice keeps its first marker.
"""

from pydantic import BaseModel, Field, ValidationError, field_validator
from datetime import datetime
from typing import Optional
from camfleet.schemas.channel import ChannelOut


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class PlacedCamera(BaseModel):
    channel_id: int = Field(alias="channelId")
    device_id: int = Field(alias="deviceId")
    x: float            # % of canvas width
    y: float            # % of canvas height
    rotation: int = 0   # degrees
    flipped: bool = False

    @field_validator("x", "y")
    @classmethod
    def _clamp(cls, v):
        return clamp_percent(v)

    @field_validator("rotation")
    @classmethod
    def _wrap(cls, v):
        return v % 360

    class Config:
        populate_by_name = True


def coerce_placed_cameras(raw) -> list[PlacedCamera]:
    if not isinstance(raw, list):
        return []
    cameras, seen = [], set()
    for entry in raw:
        if isinstance(entry, PlacedCamera):
            camera = entry
        else:
            try:
                camera = PlacedCamera.model_validate(entry)
            except ValidationError:
                continue
        if camera.channel_id in seen:
            continue
        seen.add(camera.channel_id)
        cameras.append(camera)
    return cameras


class DivisionLayout(BaseModel):
    id: Optional[int] = None            # None until the first save creates the row
    division_id: int
    background_image_url: Optional[str] = None
    background_rotation: int = 0
    placed_cameras: list[PlacedCamera] = []
    created_at: Optional[datetime] = None

    @field_validator("placed_cameras", mode="before")
    @classmethod
    def _coerce_cameras(cls, v):
        return coerce_placed_cameras(v)

    @field_validator("background_rotation", mode="before")
    @classmethod
    def _wrap_rotation(cls, v):
        if v is None:
            return 0
        return v % 360 if isinstance(v, int) else v

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def is_locked(self) -> bool:
        """Background swap and rotation are refused while any camera is placed."""
        return len(self.placed_cameras) > 0

    def placement_for(self, channel_id: int) -> Optional[PlacedCamera]:
        return next((pc for pc in self.placed_cameras if pc.channel_id == channel_id), None)

    class Config:
        from_attributes = True


# ── Editor requests ──────────────────────────────────────────────────────────

class Point(BaseModel):
    x: float
    y: float


class Bounds(BaseModel):
    left: float = 0
    top: float = 0
    width: float
    height: float


class PlaceCameraIn(BaseModel):
    channel_id: int
    device_id: Optional[int] = None     # derived from the channel; checked when sent
    pointer: Optional[Point] = None
    bounds: Optional[Bounds] = None
    x: Optional[float] = None           # percentages, when the client already converted
    y: Optional[float] = None


class MoveCameraIn(BaseModel):
    bounds: Optional[Bounds] = None
    path: list[Point] = []              # pointer samples, last one is the release point
    x: Optional[float] = None
    y: Optional[float] = None


class BackgroundRotateIn(BaseModel):
    degrees: int = 90


# ── Editor views ─────────────────────────────────────────────────────────────

class MarkerView(BaseModel):
    placement: PlacedCamera
    channel: ChannelOut
    device_name: str


class SidebarChannel(BaseModel):
    channel: ChannelOut
    placed: bool


class SidebarDevice(BaseModel):
    id: int
    name: str
    location: str
    channels: list[SidebarChannel]


class LayoutView(BaseModel):
    layout: DivisionLayout
    locked: bool
    markers: list[MarkerView]
    sidebar: list[SidebarDevice]
