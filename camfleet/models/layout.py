# camfleet/models/layout.py
"""
Division floor-plan layouts (one per division).
placed_cameras is a JSON list of {channelId, deviceId, x, y, rotation, flipped};
coordinates are percentages of the background image, so a new image invalidates them.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from camfleet.database import Base


class Layout(Base):
    __tablename__ = "layouts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    division_id = Column(Integer, ForeignKey("divisions.id", ondelete="CASCADE"),
                         unique=True, nullable=False, index=True)
    background_image_url = Column(String(1000))
    background_rotation = Column(Integer, nullable=False, default=0)
    placed_cameras = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    division = relationship("Division", back_populates="layout")

    def __repr__(self):
        return f"<Layout {self.id} division={self.division_id} cameras={len(self.placed_cameras or [])}>"
