# camfleet/services/filter_service.py
"""
Dashboard filters: status, division and corrective action.

Selecting the active value again clears it. Status and division exclude each
other and the action filter; picking an action forces the status filter to
Offline (actions only exist on problem channels) and clears the division.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import MutableMapping, Optional
from camfleet.models.enums import CameraStatus
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.division import DivisionOut

SESSION_KEY = "filters"


@dataclass(frozen=True)
class FilterState:
    status: Optional[str] = None
    division_id: Optional[int] = None
    action: Optional[str] = None

    @property
    def has_channel_filter(self) -> bool:
        return self.status is not None or self.action is not None

    @property
    def is_empty(self) -> bool:
        return self.division_id is None and not self.has_channel_filter


def _value(v):
    return v.value if isinstance(v, Enum) else v


def toggle_status(state: FilterState, status) -> FilterState:
    status = _value(status)
    new_status = None if status == state.status else status
    if new_status is None:
        return replace(state, status=None)
    return FilterState(status=new_status)


def toggle_division(state: FilterState, division_id: Optional[int]) -> FilterState:
    new_division = None if division_id == state.division_id else division_id
    if new_division is None:
        return replace(state, division_id=None)
    return FilterState(division_id=new_division)


def toggle_action(state: FilterState, action) -> FilterState:
    action = _value(action)
    new_action = None if action == state.action else action
    if new_action is None:
        return replace(state, action=None)
    return FilterState(status=CameraStatus.OFFLINE.value, action=new_action)


def clear_all() -> FilterState:
    return FilterState()


def filter_devices(devices: list[DeviceOut], state: FilterState) -> list[DeviceOut]:
    visible = devices
    if state.division_id is not None:
        visible = [d for d in visible if d.division_id == state.division_id]

    # Without a channel filter, devices with no channels stay visible
    if not state.has_channel_filter:
        return list(visible)

    result = []
    for device in visible:
        channels = [
            c for c in device.channels
            if (state.status is None or c.status == state.status)
            and (state.action is None or c.action_taken == state.action)
        ]
        if channels:
            result.append(device.model_copy(update={"channels": channels}))
    return result


def active_filter_label(state: FilterState, divisions: list[DivisionOut]) -> Optional[str]:
    """Text of the 'Filtrando por' banner, or None when nothing is filtered."""
    if state.division_id is not None:
        division = next((d for d in divisions if d.id == state.division_id), None)
        return division.name if division else None
    if state.action is not None:
        return f"Ação: {state.action}"
    return state.status


class FilterCoordinator:
    """
    Current filter selection of one dashboard client.
    The selection is kept in `store` (the client's session for HTTP callers)
    as a plain dict, so it survives between requests of the same browser only.
    """

    def __init__(self, store: Optional[MutableMapping] = None):
        self._store = store if store is not None else {}

    @property
    def state(self) -> FilterState:
        return FilterState(**self._store.get(SESSION_KEY, {}))

    @state.setter
    def state(self, value: FilterState):
        if value.is_empty:
            self._store.pop(SESSION_KEY, None)
        else:
            self._store[SESSION_KEY] = asdict(value)

    def set_status(self, status) -> FilterState:
        self.state = toggle_status(self.state, status)
        return self.state

    def set_division(self, division_id) -> FilterState:
        self.state = toggle_division(self.state, division_id)
        return self.state

    def set_action(self, action) -> FilterState:
        self.state = toggle_action(self.state, action)
        return self.state

    def clear(self) -> FilterState:
        self.state = clear_all()
        return self.state

    def apply(self, devices: list[DeviceOut]) -> list[DeviceOut]:
        return filter_devices(devices, self.state)
