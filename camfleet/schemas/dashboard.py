# camfleet/schemas/dashboard.py
from pydantic import BaseModel
from typing import Optional
from camfleet.models.enums import ActionType, CameraStatus
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.stats import CameraStats


class StatusFilterIn(BaseModel):
    value: Optional[CameraStatus] = None


class DivisionFilterIn(BaseModel):
    value: Optional[int] = None


class ActionFilterIn(BaseModel):
    value: Optional[ActionType] = None


class FilterStateOut(BaseModel):
    status: Optional[str] = None
    division_id: Optional[int] = None
    action: Optional[str] = None
    label: Optional[str] = None


class DashboardOut(BaseModel):
    stats: CameraStats
    filters: FilterStateOut
    devices: list[DeviceOut]


class LoginIn(BaseModel):
    password: str


class ReportIn(BaseModel):
    conclusion: Optional[str] = None
