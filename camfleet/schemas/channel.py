# camfleet/schemas/channel.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from camfleet.models.enums import ActionType, CameraStatus


class ChannelOut(BaseModel):
    id: int
    device_id: int
    name: str
    status: str                        # Online | Offline; unknown values are tolerated
    action_taken: Optional[str] = None
    action_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChannelIn(BaseModel):
    name: str


class ChannelActionIn(BaseModel):
    action: ActionType
    notes: str = ""


class ChannelStatusIn(BaseModel):
    status: CameraStatus
