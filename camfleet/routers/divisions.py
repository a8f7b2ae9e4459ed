# camfleet/routers/divisions.py
from fastapi import APIRouter, Depends, status
from camfleet.dependencies import Services, get_services, require_admin
from camfleet.schemas.division import DivisionIn, DivisionOut
from camfleet.services import division_service

router = APIRouter()


@router.get("/divisions", response_model=list[DivisionOut], summary="All divisions, by name")
def list_divisions(services: Services = Depends(get_services)):
    return services.cache.divisions


@router.post("/divisions", response_model=DivisionOut, status_code=status.HTTP_201_CREATED)
async def create_division(body: DivisionIn, services: Services = Depends(require_admin)):
    return await division_service.save_division(services.gateway, services.cache, body.name)


@router.put("/divisions/{division_id}", response_model=DivisionOut, summary="Rename a division")
async def rename_division(division_id: int, body: DivisionIn, services: Services = Depends(require_admin)):
    return await division_service.save_division(services.gateway, services.cache, body.name, division_id)


@router.delete("/divisions/{division_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_division(division_id: int, confirm: bool = False,
                          services: Services = Depends(require_admin)):
    """Refused while devices use the division. Without ?confirm=true answers 409 with the prompt."""
    await division_service.delete_division(services.gateway, services.cache, division_id, confirm)
