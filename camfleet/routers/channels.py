# camfleet/routers/channels.py
from fastapi import APIRouter, Depends, status
from camfleet.dependencies import Services, get_services, require_admin
from camfleet.errors import NotFound
from camfleet.schemas.channel import ChannelActionIn, ChannelIn, ChannelOut, ChannelStatusIn
from camfleet.services import channel_service

router = APIRouter()


def _current(services: Services, channel_id: int) -> ChannelOut:
    found = services.cache.find_channel(channel_id)
    if found is None:
        raise NotFound("Canal não encontrado.")
    return found[0]


@router.get("/channels/{channel_id}", response_model=ChannelOut)
def get_channel(channel_id: int, services: Services = Depends(get_services)):
    return _current(services, channel_id)


@router.put("/channels/{channel_id}", response_model=ChannelOut, summary="Rename a channel")
async def rename_channel(channel_id: int, body: ChannelIn, services: Services = Depends(require_admin)):
    return await channel_service.rename_channel(services.gateway, services.cache, channel_id, body.name)


@router.delete("/channels/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_channel(channel_id: int, confirm: bool = False,
                         services: Services = Depends(require_admin)):
    await channel_service.delete_channel(services.gateway, services.cache, channel_id, confirm)


@router.post("/channels/{channel_id}/action", response_model=ChannelOut,
             summary="Register a corrective action (sets Offline)")
async def take_action(channel_id: int, body: ChannelActionIn, services: Services = Depends(require_admin)):
    await channel_service.take_action(services.gateway, services.cache, channel_id, body.action, body.notes)
    return _current(services, channel_id)


@router.put("/channels/{channel_id}/status", response_model=ChannelOut)
async def change_status(channel_id: int, body: ChannelStatusIn, services: Services = Depends(require_admin)):
    """Online clears the registered action."""
    await channel_service.change_status(services.gateway, services.cache, channel_id, body.status)
    return _current(services, channel_id)
