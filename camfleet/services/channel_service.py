# camfleet/services/channel_service.py
"""
Channel (camera) management and the corrective-action workflow.

Status rules:
  take_action   → Offline + action + notes, plus a system log entry
  set Online    → action fields cleared, plus a system log entry
  set Offline   → status only
A failed log write is logged and never fails the status change itself.
"""

import re
from typing import Optional
from camfleet.errors import (
    ConfirmationRequired, GatewayError, NotFound, ValidationFailed, failure_from_gateway,
)
from camfleet.models.enums import ActionType, CameraStatus
from camfleet.schemas.channel import ChannelOut
from camfleet.services.gateway import Gateway
from camfleet.services.state_cache import StateCache
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

CAM_NAME = re.compile(r"^Cam\s*(\d+)$", re.IGNORECASE)
NO_NOTES_ENTRY = "Ação registrada sem notas."
RESTORED_ENTRY = "Câmera foi restaurada para o status Online."


def _device_or_404(cache: StateCache, device_id: int):
    device = cache.find_device(device_id)
    if device is None:
        raise NotFound("Dispositivo não encontrado.")
    return device


def _channel_or_404(cache: StateCache, channel_id: int):
    found = cache.find_channel(channel_id)
    if found is None:
        raise NotFound("Canal não encontrado.")
    return found


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("O nome do canal não pode estar vazio.")
    return name


def next_cam_names(existing_names: list[str], count: int) -> list[str]:
    """`count` names continuing after the highest existing 'Cam <n>'."""
    numbers = [int(m.group(1)) for m in (CAM_NAME.match(n.strip()) for n in existing_names) if m]
    start = max((n for n in numbers if n > 0), default=0) + 1
    return [f"Cam {start + i}" for i in range(count)]


async def add_channel(gateway: Gateway, cache: StateCache, device_id: int, name: str) -> ChannelOut:
    device = _device_or_404(cache, device_id)
    name = _clean_name(name)
    if len(device.channels) >= device.channel_count:
        raise ValidationFailed(
            f"Este dispositivo já atingiu o limite de {device.channel_count} canais "
            f"e não pode adicionar mais."
        )
    try:
        row = (await gateway.insert("channels", {"device_id": device_id, "name": name,
                                                 "status": CameraStatus.ONLINE.value}))[0]
    except GatewayError as e:
        logger.error(f"[CHANNELS] Add '{name}' to device {device_id} failed: {e.message}")
        raise failure_from_gateway(e, f'Erro ao salvar o canal "{name}".', "channels")
    logger.info(f"[CHANNELS] Added '{name}' to device '{device.name}'")
    await cache.refresh()
    return ChannelOut.model_validate(row)


async def rename_channel(gateway: Gateway, cache: StateCache, channel_id: int, name: str) -> ChannelOut:
    _channel_or_404(cache, channel_id)
    name = _clean_name(name)
    try:
        row = await gateway.update("channels", channel_id, {"name": name})
    except GatewayError as e:
        logger.error(f"[CHANNELS] Rename {channel_id} failed: {e.message}")
        raise failure_from_gateway(e, f'Erro ao salvar o canal "{name}".', "channels")
    await cache.refresh()
    return ChannelOut.model_validate(row)


async def delete_channel(gateway: Gateway, cache: StateCache, channel_id: int,
                         confirm: bool = False) -> None:
    channel, _ = _channel_or_404(cache, channel_id)
    if not confirm:
        raise ConfirmationRequired(
            f'Tem certeza de que deseja excluir o canal "{channel.name}"? Isto também removerá seu '
            f"histórico de eventos e sua posição no mapa de layout. Esta ação não pode ser desfeita."
        )
    try:
        await gateway.delete("channels", channel_id)
    except GatewayError as e:
        logger.error(f"[CHANNELS] Delete {channel_id} failed: {e.message}")
        raise failure_from_gateway(e, f'Erro ao excluir o canal "{channel.name}".', "channels")
    logger.info(f"[CHANNELS] Deleted channel '{channel.name}'")
    await cache.refresh()


async def auto_create_channels(gateway: Gateway, cache: StateCache, device_id: int,
                               confirm: bool = False) -> int:
    """Fill the device's free capacity with 'Cam <n>' channels. Returns how many were created."""
    device = _device_or_404(cache, device_id)
    missing = device.channel_count - len(device.channels)
    if missing <= 0:
        raise ValidationFailed("Não há canais disponíveis neste dispositivo.")
    if not confirm:
        raise ConfirmationRequired(
            f'Tem certeza que deseja criar {missing} câmeras automaticamente '
            f'para o dispositivo "{device.name}"?'
        )

    names = next_cam_names([c.name for c in device.channels], missing)
    rows = [{"device_id": device_id, "name": name, "status": CameraStatus.ONLINE.value}
            for name in names]
    try:
        await gateway.insert("channels", rows)
    except GatewayError as e:
        logger.error(f"[CHANNELS] Auto-create for device {device_id} failed: {e.message}")
        raise failure_from_gateway(e, "Ocorreu um erro ao criar as câmeras automaticamente.", "channels")

    logger.info(f"[CHANNELS] Auto-created {missing} channels on '{device.name}' ({names[0]}..{names[-1]})")
    await cache.refresh()
    return missing


async def _write_log(gateway: Gateway, row: dict):
    try:
        await gateway.insert("channel_logs", row)
    except GatewayError as e:
        logger.error(f"[LOGBOOK] Failed to create log entry for channel {row['channel_id']}: {e.message}")


async def take_action(gateway: Gateway, cache: StateCache, channel_id: int,
                      action: ActionType, notes: Optional[str] = "") -> None:
    _channel_or_404(cache, channel_id)
    action_value = ActionType(action).value
    notes = notes or ""
    try:
        await gateway.update("channels", channel_id, {
            "action_taken": action_value,
            "action_notes": notes,
            "status": CameraStatus.OFFLINE.value,
        })
    except GatewayError as e:
        logger.error(f"[CHANNELS] Action on channel {channel_id} failed: {e.message}")
        raise failure_from_gateway(e, "Erro ao registrar a ação.", "channels")

    await _write_log(gateway, {
        "channel_id": channel_id,
        "log_entry": notes or NO_NOTES_ENTRY,
        "new_status": CameraStatus.OFFLINE.value,
        "action_taken": action_value,
    })
    logger.warning(f"[CHANNELS] Channel {channel_id} Offline, action: {action_value}")
    await cache.refresh()


async def change_status(gateway: Gateway, cache: StateCache, channel_id: int,
                        status: CameraStatus) -> None:
    _channel_or_404(cache, channel_id)
    status = CameraStatus(status)
    patch = {"status": status.value}
    if status == CameraStatus.ONLINE:
        patch.update(action_taken=None, action_notes=None)
        await _write_log(gateway, {
            "channel_id": channel_id,
            "log_entry": RESTORED_ENTRY,
            "new_status": CameraStatus.ONLINE.value,
        })

    try:
        await gateway.update("channels", channel_id, patch)
    except GatewayError as e:
        logger.error(f"[CHANNELS] Status change on channel {channel_id} failed: {e.message}")
        raise failure_from_gateway(e, "Erro ao alterar o status da câmera.", "channels")

    logger.info(f"[CHANNELS] Channel {channel_id} set {status.value}")
    await cache.refresh()
