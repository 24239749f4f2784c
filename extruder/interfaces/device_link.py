# extruder/interfaces/device_link.py
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, List, Protocol

from extruder.model.record import PortDescriptor


class Channel(str, Enum):
    """Named event streams emitted by the device layer."""
    RAW_LINE = "serial-data"          # str, every line as received
    ERROR = "serial-error"            # str, fatal read error
    INIT_BANNER = "init-block"        # str, boot banner lines joined by "\n"
    HEADER = "header-detected"        # str, column header line
    MEASUREMENT = "data-row"          # TelemetryRecord
    WARNING = "parse-warning"         # str, advisory decoder message


EventHandler = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class DeviceLink(Protocol):
    """
    Boundary to the device-communication layer.

    Async operations raise extruder.transport.errors.TransportError
    subclasses on failure. listen() returns a handle that removes exactly
    that registration when called.
    """

    async def list_ports(self) -> List[PortDescriptor]: ...
    async def open(self, port: str, baud_rate: int) -> None: ...
    async def close(self) -> None: ...
    async def send_wakeup(self) -> None: ...
    def listen(self, channel: Channel, handler: EventHandler) -> Unsubscribe: ...
