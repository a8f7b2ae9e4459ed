# camfleet/routers/layouts.py
"""
Floor-plan editor endpoints.
Every mutation answers with the refreshed LayoutView of the division.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from typing import Optional
from camfleet.dependencies import Services, get_services, require_admin
from camfleet.errors import NotFound, ValidationFailed
from camfleet.schemas.layout import BackgroundRotateIn, LayoutView, MoveCameraIn, PlaceCameraIn
from camfleet.services.layout_service import select_division

router = APIRouter()


def _division_id(services: Services, division_id: int) -> int:
    if services.cache.find_division(division_id) is None:
        raise NotFound("Divisão não encontrada.")
    return division_id


@router.get("/layouts/current", response_model=LayoutView, summary="Layout of the selected division")
def current_layout(selected: Optional[int] = None, services: Services = Depends(get_services)):
    """Falls back to the first division (by name) when `selected` is missing or was deleted."""
    division_id = select_division(services.cache.divisions, selected)
    if division_id is None:
        raise NotFound("Nenhuma divisão cadastrada.")
    return services.layouts.view(division_id)


@router.get("/layouts/{division_id}", response_model=LayoutView)
def get_layout(division_id: int, services: Services = Depends(get_services)):
    return services.layouts.view(_division_id(services, division_id))


@router.post("/layouts/{division_id}/cameras", response_model=LayoutView, summary="Drop a channel on the canvas")
async def place_camera(division_id: int, body: PlaceCameraIn, services: Services = Depends(require_admin)):
    _division_id(services, division_id)
    found = services.cache.find_channel(body.channel_id)
    if found is None:
        raise NotFound("Canal não encontrado.")
    _, device = found
    if device.division_id != division_id:
        raise ValidationFailed("Esta câmera pertence a um dispositivo de outra divisão.")
    if body.device_id is not None and body.device_id != device.id:
        raise ValidationFailed("O canal informado não pertence a este dispositivo.")
    if body.x is not None and body.y is not None:
        await services.layouts.place_at(division_id, device.id, body.channel_id, body.x, body.y)
    else:
        await services.layouts.place(division_id, device.id, body.channel_id, body.pointer, body.bounds)
    return services.layouts.view(division_id)


@router.put("/layouts/{division_id}/cameras/{channel_id}", response_model=LayoutView, summary="Move a marker")
async def move_camera(division_id: int, channel_id: int, body: MoveCameraIn,
                      services: Services = Depends(require_admin)):
    """Either final percentages (x, y) or the pointer samples of a drag plus the canvas bounds."""
    _division_id(services, division_id)
    if body.x is not None and body.y is not None:
        await services.layouts.move(division_id, channel_id, body.x, body.y)
        return services.layouts.view(division_id)

    drag = services.layouts.begin_drag(division_id, channel_id)
    if drag is None:
        raise NotFound("Esta câmera não está posicionada no layout.")
    for point in body.path:
        drag.drag_to(point, body.bounds)
    await drag.release()
    return services.layouts.view(division_id)


@router.post("/layouts/{division_id}/cameras/{channel_id}/rotate", response_model=LayoutView)
async def rotate_camera(division_id: int, channel_id: int, services: Services = Depends(require_admin)):
    await services.layouts.rotate(_division_id(services, division_id), channel_id)
    return services.layouts.view(division_id)


@router.post("/layouts/{division_id}/cameras/{channel_id}/flip", response_model=LayoutView)
async def flip_camera(division_id: int, channel_id: int, services: Services = Depends(require_admin)):
    await services.layouts.flip(_division_id(services, division_id), channel_id)
    return services.layouts.view(division_id)


@router.delete("/layouts/{division_id}/cameras/{channel_id}", response_model=LayoutView)
async def remove_camera(division_id: int, channel_id: int, services: Services = Depends(require_admin)):
    await services.layouts.remove(_division_id(services, division_id), channel_id)
    return services.layouts.view(division_id)


@router.delete("/layouts/{division_id}/cameras", response_model=LayoutView, summary="Remove every marker")
async def clear_cameras(division_id: int, services: Services = Depends(require_admin)):
    await services.layouts.clear_cameras(_division_id(services, division_id))
    return services.layouts.view(division_id)


@router.put("/layouts/{division_id}/background", response_model=LayoutView, summary="Replace the background image")
async def replace_background(division_id: int, file: UploadFile = File(...),
                             services: Services = Depends(require_admin)):
    """Refused while cameras are placed. Resets rotation and clears placements."""
    _division_id(services, division_id)
    data = await file.read()
    if not data:
        raise ValidationFailed("O arquivo de imagem está vazio.")
    await services.layouts.replace_background(division_id, file.filename or "layout.png", data,
                                              file.content_type)
    return services.layouts.view(division_id)


@router.post("/layouts/{division_id}/background/rotate", response_model=LayoutView)
async def rotate_background(division_id: int, body: BackgroundRotateIn,
                            services: Services = Depends(require_admin)):
    await services.layouts.rotate_background(_division_id(services, division_id), body.degrees)
    return services.layouts.view(division_id)


@router.post("/layouts/{division_id}/background/reset", response_model=LayoutView)
async def reset_background(division_id: int, services: Services = Depends(require_admin)):
    await services.layouts.reset_background_rotation(_division_id(services, division_id))
    return services.layouts.view(division_id)
