# camfleet/models/enums.py
"""Value sets shared by the tables, the snapshot schemas and the services."""

from enum import Enum


class CameraStatus(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"


class DeviceType(str, Enum):
    NVR = "NVR"
    DVR = "DVR"


class ActionType(str, Enum):
    COMPRAS = "Requisição de Compras"
    OBRAS = "Chamado para Obras"
    RIF = "Relatório de Inspeção (RIF)"


CHANNEL_CAPACITIES = (16, 32)
