# camfleet/services/division_service.py
"""
Division management: create, rename, delete.
A division referenced by any device cannot be deleted; its layout goes with it.
"""

from typing import Optional
from camfleet.errors import (
    ConfirmationRequired, GatewayError, NotFound, ValidationFailed, failure_from_gateway,
)
from camfleet.schemas.division import DivisionOut
from camfleet.services.gateway import Gateway
from camfleet.services.state_cache import StateCache
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)


def _duplicate_message(name: str) -> str:
    return f"Erro: A divisão '{name}' já existe."


async def save_division(gateway: Gateway, cache: StateCache, name: str,
                        division_id: Optional[int] = None) -> DivisionOut:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("O nome da divisão não pode estar vazio.")
    if division_id is not None and cache.find_division(division_id) is None:
        raise NotFound("Divisão não encontrada.")
    if any(d.name.lower() == name.lower() and d.id != division_id for d in cache.divisions):
        raise ValidationFailed(_duplicate_message(name))

    try:
        if division_id is None:
            row = (await gateway.insert("divisions", {"name": name}))[0]
        else:
            row = await gateway.update("divisions", division_id, {"name": name})
    except GatewayError as e:
        logger.error(f"[DIVISIONS] Save '{name}' failed: {e.message}")
        raise failure_from_gateway(e, f'Erro ao salvar a divisão "{name}".', "divisions",
                                   unique_message=_duplicate_message(name))

    logger.info(f"[DIVISIONS] {'Created' if division_id is None else 'Renamed'} division '{name}'")
    await cache.refresh()
    return DivisionOut.model_validate(row)


async def delete_division(gateway: Gateway, cache: StateCache, division_id: int,
                          confirm: bool = False) -> None:
    division = cache.find_division(division_id)
    if division is None:
        raise NotFound("Divisão não encontrada.")
    if any(d.division_id == division_id for d in cache.devices):
        raise ValidationFailed(
            f'A divisão "{division.name}" não pode ser excluída pois está sendo utilizada '
            f"por um ou mais dispositivos."
        )
    if not confirm:
        raise ConfirmationRequired(
            f'Tem certeza de que deseja excluir a divisão "{division.name}"? O layout associado '
            f"(se existir) também será excluído. Esta ação não pode ser desfeita."
        )

    try:
        await gateway.delete("divisions", division_id)
    except GatewayError as e:
        logger.error(f"[DIVISIONS] Delete {division_id} failed: {e.message}")
        raise failure_from_gateway(
            e, f'Erro ao excluir a divisão "{division.name}".', "divisions",
            integrity_message=(f'Não é possível excluir a divisão "{division.name}" pois ela ainda '
                               f"está sendo referenciada por outros dados."),
        )

    logger.info(f"[DIVISIONS] Deleted division '{division.name}'")
    await cache.refresh()
