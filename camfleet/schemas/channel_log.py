# camfleet/schemas/channel_log.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ChannelLogOut(BaseModel):
    id: int
    channel_id: int
    log_entry: str
    new_status: Optional[str] = None
    action_taken: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_system_event(self) -> bool:
        return self.new_status is not None or self.action_taken is not None

    class Config:
        from_attributes = True


class NoteIn(BaseModel):
    note: str
