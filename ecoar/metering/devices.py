"""Hardcoded device roster: configuration only."""

from __future__ import annotations

from dataclasses import dataclass

DEVICE_ID_ALL = "all"


@dataclass(frozen=True, slots=True)
class Device:
    id: int | str
    name: str
    location: str


DEVICES: dict[int, Device] = {
    33: Device(id=33, name="Bomba CAG", location="Dispositivo 33"),
    36: Device(id=36, name="Bomba de Esgoto", location="Dispositivo 36"),
    37: Device(id=37, name="Bomba de Recalque", location="Dispositivo 37"),
    38: Device(id=38, name="Bomba de Águas Pluviais", location="Dispositivo 38"),
    39: Device(id=39, name="Aquecimento de Água", location="Dispositivo 39"),
    40: Device(id=40, name="Fancoil Auditório", location="Dispositivo 40"),
    41: Device(id=41, name="Chiller", location="Dispositivo 41"),
    42: Device(id=42, name="Bomba de Gordura", location="Dispositivo 42"),
}

ALL_DEVICES = Device(id=DEVICE_ID_ALL, name="Todos os Equipamentos", location="Todos")


def list_devices() -> list[Device]:
    return list(DEVICES.values())


def list_device_ids() -> list[int]:
    return list(DEVICES)


def get_device(device_id: int | str) -> Device | None:
    if device_id == DEVICE_ID_ALL:
        return ALL_DEVICES
    try:
        return DEVICES.get(int(device_id))
    except (TypeError, ValueError):
        return None
