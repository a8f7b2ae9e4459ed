# camfleet/routers/logs.py
from fastapi import APIRouter, Depends, status
from camfleet.dependencies import Services, require_admin
from camfleet.schemas.channel_log import ChannelLogOut, NoteIn
from camfleet.services import logbook_service

router = APIRouter()


@router.get("/channels/{channel_id}/logs", response_model=list[ChannelLogOut], summary="Logbook, newest first")
async def list_logs(channel_id: int, services: Services = Depends(require_admin)):
    return await logbook_service.list_logs(services.gateway, channel_id)


@router.post("/channels/{channel_id}/logs", response_model=ChannelLogOut, status_code=status.HTTP_201_CREATED)
async def add_note(channel_id: int, body: NoteIn, services: Services = Depends(require_admin)):
    return await logbook_service.add_note(services.gateway, services.cache, channel_id, body.note)


@router.put("/logs/{log_id}", response_model=ChannelLogOut, summary="Edit a user note")
async def update_note(log_id: int, body: NoteIn, services: Services = Depends(require_admin)):
    return await logbook_service.update_note(services.gateway, services.cache, log_id, body.note)


@router.delete("/logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(log_id: int, confirm: bool = False, services: Services = Depends(require_admin)):
    await logbook_service.delete_note(services.gateway, services.cache, log_id, confirm)
