# camfleet/routers/devices.py
from fastapi import APIRouter, Depends, status
from typing import Optional
from camfleet.dependencies import Services, get_services, require_admin
from camfleet.errors import NotFound
from camfleet.models.enums import ActionType, CameraStatus
from camfleet.schemas.channel import ChannelIn, ChannelOut
from camfleet.schemas.device import DeviceIn, DeviceOut
from camfleet.services import channel_service, device_service
from camfleet.services.filter_service import FilterState, filter_devices

router = APIRouter()


@router.get("/devices", response_model=list[DeviceOut], summary="Devices with channels, filterable")
def list_devices(
    status: Optional[CameraStatus] = None,
    division_id: Optional[int] = None,
    action: Optional[ActionType] = None,
    services: Services = Depends(get_services),
):
    """
    Stateless filtering with the dashboard rules applied to one request.
    Use /dashboard/filters/* for the toggling filter state.
    """
    state = FilterState(
        status=status.value if status else None,
        division_id=division_id,
        action=action.value if action else None,
    )
    return filter_devices(services.cache.devices, state)


@router.get("/devices/{device_id}", response_model=DeviceOut)
def get_device(device_id: int, services: Services = Depends(get_services)):
    device = services.cache.find_device(device_id)
    if device is None:
        raise NotFound("Dispositivo não encontrado.")
    return device


@router.post("/devices", response_model=DeviceOut, status_code=status.HTTP_201_CREATED)
async def create_device(body: DeviceIn, services: Services = Depends(require_admin)):
    return await device_service.save_device(services.gateway, services.cache, body)


@router.put("/devices/{device_id}", response_model=DeviceOut)
async def update_device(device_id: int, body: DeviceIn, services: Services = Depends(require_admin)):
    return await device_service.save_device(services.gateway, services.cache, body, device_id)


@router.delete("/devices/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(device_id: int, confirm: bool = False,
                        services: Services = Depends(require_admin)):
    await device_service.delete_device(services.gateway, services.cache, device_id, confirm)


@router.post("/devices/{device_id}/channels", response_model=ChannelOut,
             status_code=status.HTTP_201_CREATED, summary="Add a channel (starts Online)")
async def add_channel(device_id: int, body: ChannelIn, services: Services = Depends(require_admin)):
    return await channel_service.add_channel(services.gateway, services.cache, device_id, body.name)


@router.post("/devices/{device_id}/channels/auto", summary="Fill free capacity with 'Cam N' channels")
async def auto_create_channels(device_id: int, confirm: bool = False,
                               services: Services = Depends(require_admin)):
    created = await channel_service.auto_create_channels(services.gateway, services.cache, device_id, confirm)
    return {"created": created, "device": services.cache.find_device(device_id)}
