# camfleet/schemas/device.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from camfleet.schemas.channel import ChannelOut


class DeviceOut(BaseModel):
    id: int
    name: str
    location: str
    type: str                          # NVR | DVR
    division_id: int
    channel_count: int
    created_at: Optional[datetime] = None
    channels: list[ChannelOut] = []

    class Config:
        from_attributes = True


class DeviceIn(BaseModel):
    name: str
    location: str
    type: str = "NVR"
    division_id: int
    channel_count: int = 16
