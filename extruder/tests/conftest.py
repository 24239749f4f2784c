from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Tuple

import pytest

from extruder.interfaces.device_link import Channel
from extruder.model.record import RECORD_COLUMNS, PortDescriptor, SystemStatus, TelemetryRecord
from extruder.transport.bus import ChannelBus


class FakeDeviceLink:
    """
    DeviceLink stub built on the real ChannelBus.

    - fail_* attributes hold an exception to raise from that operation
    - open_gate: asyncio.Event that open() waits on (create it inside the loop)
    - calls records every transport call in order
    """

    def __init__(self):
        self.bus = ChannelBus()
        self.calls: List[Tuple[Any, ...]] = []
        self.ports = [PortDescriptor(name="COM3", kind="USB")]
        self.is_open = False

        self.fail_list: Optional[Exception] = None
        self.fail_open: Optional[Exception] = None
        self.fail_close: Optional[Exception] = None
        self.fail_wakeup: Optional[Exception] = None
        self.fail_listen_on: Optional[Channel] = None

        self.open_gate: Optional[asyncio.Event] = None

    async def list_ports(self):
        self.calls.append(("list_ports",))
        if self.fail_list is not None:
            raise self.fail_list
        return list(self.ports)

    async def open(self, port: str, baud_rate: int) -> None:
        self.calls.append(("open", port, baud_rate))
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.fail_open is not None:
            raise self.fail_open
        self.is_open = True

    async def close(self) -> None:
        self.calls.append(("close",))
        self.is_open = False
        if self.fail_close is not None:
            raise self.fail_close

    async def send_wakeup(self) -> None:
        self.calls.append(("send_wakeup",))
        if self.fail_wakeup is not None:
            raise self.fail_wakeup

    def listen(self, channel, handler):
        if self.fail_listen_on is not None and Channel(channel) is self.fail_listen_on:
            raise RuntimeError("listen refused")
        return self.bus.listen(channel, handler)

    def emit(self, channel, payload) -> int:
        return self.bus.emit(channel, payload)

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


def make_record(time: float = 0.0, **overrides) -> TelemetryRecord:
    values = {}
    for name, _label, cast in RECORD_COLUMNS:
        values[name] = SystemStatus.parse("IDLE") if cast is SystemStatus else cast(0)
    values["time"] = float(time)
    values.update(overrides)
    return TelemetryRecord(**values)


@pytest.fixture
def link() -> FakeDeviceLink:
    return FakeDeviceLink()


@pytest.fixture
def record_factory():
    return make_record
