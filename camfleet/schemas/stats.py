# camfleet/schemas/stats.py
from pydantic import BaseModel
from typing import Optional
from camfleet.schemas.channel import ChannelOut


class ChartDatum(BaseModel):
    name: str
    value: int
    id: Optional[int] = None     # division id for the division chart


class DeviceStats(BaseModel):
    total: int = 0
    nvr: int = 0
    dvr: int = 0


class Totals(BaseModel):
    devices: int = 0
    channels: int = 0
    online: int = 0
    offline: int = 0
    problems: int = 0
    available_channels: int = 0


class ProblemChannel(BaseModel):
    channel: ChannelOut
    device_name: str


class SummaryParts(BaseModel):
    title: str
    greeting: str
    intro: str
    overview_title: str
    overview_items: list[str]
    problem_intro: str
    incident_details_title: Optional[str] = None
    incident_details: Optional[str] = None
    conclusion_title: Optional[str] = None
    conclusion: str = ""
    signature: str


class CameraStats(BaseModel):
    all_channels: list[ChannelOut]
    problem_channels: list[ProblemChannel]
    status_counts: dict[str, int]
    action_counts: dict[str, int]
    status_chart_data: list[ChartDatum]
    action_chart_data: list[ChartDatum]
    division_chart_data: list[ChartDatum]
    device_stats: DeviceStats
    totals: Totals
    summary_parts: SummaryParts
