# camfleet/schemas/division.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class DivisionOut(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DivisionIn(BaseModel):
    name: str
