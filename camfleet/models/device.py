# camfleet/models/device.py
"""
Recording devices table (NVR/DVR).
Each device exposes a fixed number of channels (16 or 32) and belongs to one division.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from camfleet.database import Base
from camfleet.models.enums import DeviceType


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    location = Column(String(200), nullable=False)
    type = Column(String(10), nullable=False, default=DeviceType.NVR.value)  # NVR | DVR
    division_id = Column(Integer, ForeignKey("divisions.id", ondelete="RESTRICT"),
                         nullable=False, index=True)
    channel_count = Column(Integer, nullable=False, default=16)              # 16 | 32
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    channels = relationship("Channel", back_populates="device", order_by="Channel.name",
                            cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Device {self.id} name={self.name} type={self.type}>"
