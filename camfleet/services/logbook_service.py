# camfleet/services/logbook_service.py
"""
Per-channel logbook. System events (status or action set) are read-only;
operators may add, edit and delete their own notes.
"""

from camfleet.errors import (
    ConfirmationRequired, GatewayError, NotFound, ValidationFailed, failure_from_gateway,
)
from camfleet.schemas.channel_log import ChannelLogOut
from camfleet.services.gateway import Gateway
from camfleet.services.state_cache import StateCache
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_NOTE = "A nota (apontamento) não pode estar vazia."


async def list_logs(gateway: Gateway, channel_id: int) -> list[ChannelLogOut]:
    """Newest first. A failed read shows an empty logbook."""
    try:
        rows = await gateway.list("channel_logs", order_by="created_at", descending=True,
                                  channel_id=channel_id)
    except GatewayError as e:
        logger.error(f"[LOGBOOK] Could not load logs of channel {channel_id}: {e.message}")
        return []
    return [ChannelLogOut.model_validate(row) for row in rows]


async def _user_note(gateway: Gateway, log_id: int) -> ChannelLogOut:
    try:
        row = await gateway.get("channel_logs", log_id)
    except GatewayError as e:
        raise failure_from_gateway(e, "Erro ao carregar o apontamento.", "channel_logs")
    if row is None:
        raise NotFound("Apontamento não encontrado.")
    log = ChannelLogOut.model_validate(row)
    if log.is_system_event:
        raise ValidationFailed("Eventos do sistema não podem ser alterados.")
    return log


async def add_note(gateway: Gateway, cache: StateCache, channel_id: int, note: str) -> ChannelLogOut:
    text = (note or "").strip()
    if not text:
        raise ValidationFailed(EMPTY_NOTE)
    if cache.find_channel(channel_id) is None:
        raise NotFound("Canal não encontrado.")
    try:
        row = (await gateway.insert("channel_logs", {"channel_id": channel_id, "log_entry": text}))[0]
    except GatewayError as e:
        logger.error(f"[LOGBOOK] Add note to channel {channel_id} failed: {e.message}")
        raise failure_from_gateway(e, "Erro ao salvar o apontamento.", "channel_logs")
    await cache.refresh()
    return ChannelLogOut.model_validate(row)


async def update_note(gateway: Gateway, cache: StateCache, log_id: int, note: str) -> ChannelLogOut:
    text = (note or "").strip()
    if not text:
        raise ValidationFailed(EMPTY_NOTE)
    await _user_note(gateway, log_id)
    try:
        row = await gateway.update("channel_logs", log_id, {"log_entry": text})
    except GatewayError as e:
        logger.error(f"[LOGBOOK] Update note {log_id} failed: {e.message}")
        raise failure_from_gateway(e, "Erro ao atualizar o apontamento.", "channel_logs")
    await cache.refresh()
    return ChannelLogOut.model_validate(row)


async def delete_note(gateway: Gateway, cache: StateCache, log_id: int, confirm: bool = False) -> None:
    await _user_note(gateway, log_id)
    if not confirm:
        raise ConfirmationRequired(
            "Tem certeza que deseja excluir este apontamento? Esta ação não pode ser desfeita."
        )
    try:
        await gateway.delete("channel_logs", log_id)
    except GatewayError as e:
        logger.error(f"[LOGBOOK] Delete note {log_id} failed: {e.message}")
        raise failure_from_gateway(e, "Erro ao excluir o apontamento.", "channel_logs")
    await cache.refresh()
