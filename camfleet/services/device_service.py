# camfleet/services/device_service.py
"""
Recording device (NVR/DVR) management.
Deleting a device takes its channels, their logs and their layout placements with it.
"""

from typing import Optional
from camfleet.errors import (
    ConfirmationRequired, GatewayError, NotFound, ValidationFailed, failure_from_gateway,
)
from camfleet.models.enums import CHANNEL_CAPACITIES, DeviceType
from camfleet.schemas.device import DeviceIn, DeviceOut
from camfleet.services.gateway import Gateway
from camfleet.services.state_cache import StateCache
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

INVALID_DIVISION = ("Erro: A divisão selecionada não é válida. "
                    "Por favor, recarregue a página e tente novamente.")


def validate_device(data: DeviceIn, cache: StateCache, device_id: Optional[int] = None) -> dict:
    """Trimmed row values, or ValidationFailed with the first problem found."""
    name = data.name.strip()
    location = data.location.strip()
    if not name:
        raise ValidationFailed("O nome do dispositivo é obrigatório.")
    if not location:
        raise ValidationFailed("A localização do dispositivo é obrigatória.")
    if data.type not in {t.value for t in DeviceType}:
        raise ValidationFailed(f"Tipo de dispositivo inválido: {data.type}. Use NVR ou DVR.")
    if data.channel_count not in CHANNEL_CAPACITIES:
        raise ValidationFailed("A quantidade de canais deve ser 16 ou 32.")
    if cache.find_division(data.division_id) is None:
        raise ValidationFailed(INVALID_DIVISION)

    if device_id is not None:
        existing = cache.find_device(device_id)
        if existing is not None and len(existing.channels) > data.channel_count:
            raise ValidationFailed(
                f"O dispositivo já possui {len(existing.channels)} canais; "
                f"a capacidade não pode ser reduzida para {data.channel_count}."
            )

    return {"name": name, "location": location, "type": data.type,
            "division_id": data.division_id, "channel_count": data.channel_count}


async def save_device(gateway: Gateway, cache: StateCache, data: DeviceIn,
                      device_id: Optional[int] = None) -> DeviceOut:
    if device_id is not None and cache.find_device(device_id) is None:
        raise NotFound("Dispositivo não encontrado.")
    row = validate_device(data, cache, device_id)
    verb = "adicionar" if device_id is None else "atualizar"

    try:
        if device_id is None:
            saved = (await gateway.insert("devices", row))[0]
        else:
            saved = await gateway.update("devices", device_id, row)
    except GatewayError as e:
        logger.error(f"[DEVICES] Save '{row['name']}' failed: {e.message}")
        raise failure_from_gateway(e, f"Erro ao {verb} o dispositivo.", "devices",
                                   integrity_message=INVALID_DIVISION)

    logger.info(f"[DEVICES] {'Added' if device_id is None else 'Updated'} device '{row['name']}' "
                f"({row['type']}, {row['channel_count']} channels)")
    await cache.refresh()
    return cache.find_device(saved["id"]) or DeviceOut.model_validate(saved)


async def delete_device(gateway: Gateway, cache: StateCache, device_id: int,
                        confirm: bool = False) -> None:
    device = cache.find_device(device_id)
    if device is None:
        raise NotFound("Dispositivo não encontrado.")
    if not confirm:
        raise ConfirmationRequired(
            f'Tem certeza de que deseja excluir o dispositivo "{device.name}"? Isto também removerá '
            f"TODAS as suas câmeras, seus históricos e posições no layout. "
            f"Esta ação não pode ser desfeita."
        )

    try:
        await gateway.delete("devices", device_id)
    except GatewayError as e:
        logger.error(f"[DEVICES] Delete {device_id} failed: {e.message}")
        raise failure_from_gateway(
            e, f'Erro ao excluir o dispositivo "{device.name}".', "devices",
            integrity_message=(f'Não é possível excluir o dispositivo "{device.name}" pois seus '
                               f"canais ainda estão sendo referenciados."),
        )

    logger.info(f"[DEVICES] Deleted device '{device.name}' and {len(device.channels)} channels")
    await cache.refresh()
