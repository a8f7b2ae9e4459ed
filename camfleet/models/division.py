# camfleet/models/division.py
"""
Divisions table: organisational areas that group recording devices.
A division owns at most one floor-plan layout; devices reference it.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from camfleet.database import Base


class Division(Base):
    __tablename__ = "divisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Deleting a division takes its layout with it; devices block the delete (RESTRICT)
    layout = relationship("Layout", back_populates="division", uselist=False,
                          cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Division {self.id} name={self.name}>"
