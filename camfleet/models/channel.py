# camfleet/models/channel.py
"""
Channels table: one row per camera feed on a recording device.
Status is set by operators; action_taken/action_notes only mean something while Offline.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from camfleet.database import Base
from camfleet.models.enums import CameraStatus


class Channel(Base):
    __tablename__ = "channels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="CASCADE"),
                       nullable=False, index=True)
    name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default=CameraStatus.ONLINE.value)
    action_taken = Column(String(100))
    action_notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    device = relationship("Device", back_populates="channels")
    logs = relationship("ChannelLog", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Channel {self.id} name={self.name} status={self.status}>"
