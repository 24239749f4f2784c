# extruder/model/record.py
from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Tuple


@dataclass(frozen=True)
class PortDescriptor:
    """
    One enumerable serial endpoint as reported by the device layer.

    kind: "USB" | "PCI" | "Bluetooth" | "Unknown"
    """
    name: str
    kind: str


class StatusKind(str, Enum):
    IDLE = "IDLE"
    HOMING = "HOMING"
    HEATING = "HEATING"
    PREPARED = "PREPARED"
    RUNNING = "RUNNING"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class SystemStatus:
    """
    Controller state machine status.

    Known states map to a StatusKind; anything else is kept as
    StatusKind.UNKNOWN with the original text in `raw`.
    """
    kind: StatusKind
    raw: str = ""

    @classmethod
    def parse(cls, text: str) -> "SystemStatus":
        key = text.strip().upper()
        kind = StatusKind.__members__.get(key, StatusKind.UNKNOWN)
        return cls(kind=kind, raw=text)

    @property
    def is_known(self) -> bool:
        return self.kind is not StatusKind.UNKNOWN

    def display(self) -> str:
        if self.is_known:
            return self.kind.value
        return self.raw or StatusKind.UNKNOWN.value


# Device columns in wire order: (field name, header label, python type).
# Status is decoded separately and marked with SystemStatus.
RECORD_COLUMNS: Tuple[Tuple[str, str, type], ...] = (
    ("time", "Time", float),
    ("set_t1", "SetT1", float),
    ("temp1", "Temp1", float),
    ("dc1", "dc1", float),
    ("err1", "Err1", int),
    ("set_t2", "SetT2", float),
    ("temp2", "Temp2", float),
    ("dc2", "dc2", float),
    ("err2", "Err2", int),
    ("set_t3", "SetT3", float),
    ("temp3", "Temp3", float),
    ("dc3", "dc3", float),
    ("err3", "Err3", int),
    ("set_t4", "SetT4", float),
    ("temp4", "Temp4", float),
    ("dc4", "dc4", float),
    ("err4", "Err4", int),
    ("int_t4", "intT4", float),
    ("ext_cur", "ExtCur", float),
    ("ext_pwm", "ExtPWM", int),
    ("ext_tmp", "ExtTmp", float),
    ("unused", "Unused", int),
    ("fault", "FAULT", int),
    ("set_rpm", "SetRPM", float),
    ("rpm", "RPM", float),
    ("ft", "FT", float),
    ("ft_avg", "FTAVG", float),
    ("puller", "Puller", int),
    ("mem_free", "MemFree", int),
    ("status", "Status", SystemStatus),
    ("wndr_spd", "WndrSpd", float),
    ("pos_spd", "PosSpd", float),
    ("length", "Length", float),
    ("volume", "Volume", float),
    ("sp_dia", "SpDia", float),
    ("sp_fill", "SpFill", float),
    ("fs_int_t", "FsIntT", int),
)


@dataclass(frozen=True)
class TelemetryRecord:
    """
    One decoded measurement row from the extruder controller.

    Produced by the device-side decoder only; the session core stores and
    evicts whole records and never edits them.
    """
    time: float

    set_t1: float
    temp1: float
    dc1: float
    err1: int

    set_t2: float
    temp2: float
    dc2: float
    err2: int

    set_t3: float
    temp3: float
    dc3: float
    err3: int

    set_t4: float
    temp4: float
    dc4: float
    err4: int

    int_t4: float

    ext_cur: float
    ext_pwm: int
    ext_tmp: float

    unused: int

    fault: int
    set_rpm: float
    rpm: float

    ft: float
    ft_avg: float

    puller: int
    mem_free: int

    status: SystemStatus

    wndr_spd: float
    pos_spd: float

    length: float
    volume: float

    sp_dia: float
    sp_fill: float

    fs_int_t: int

    @property
    def fault_active(self) -> bool:
        return self.fault == 1

    def as_dict(self) -> dict:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["status"] = self.status.display()
        return out
