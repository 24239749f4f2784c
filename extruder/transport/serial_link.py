# extruder/transport/serial_link.py
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import serial
from serial import SerialException
from serial.tools import list_ports

from extruder.interfaces.device_link import Channel, EventHandler, Unsubscribe
from extruder.model.record import PortDescriptor
from extruder.transport.bus import ChannelBus
from extruder.transport.errors import TransportEnumerationError, TransportIOError, TransportOpenError
from extruder.transport.line_framer import LineFramer

# longest run of bytes kept while waiting for a newline
MAX_LINE_BYTES = 4096


def port_kind(info) -> str:
    """Classify a pyserial ListPortInfo as USB / Bluetooth / PCI / Unknown."""
    if getattr(info, "vid", None) is not None:
        return "USB"
    desc = " ".join(filter(None, [getattr(info, "description", None), getattr(info, "hwid", None)])).lower()
    if "bluetooth" in desc or "bthenum" in desc:
        return "Bluetooth"
    if "pci" in desc:
        return "PCI"
    return "Unknown"


class SerialDeviceLink:
    """
    DeviceLink implemented via pyserial.

    Blocking pyserial calls run in worker threads; framed events are emitted
    on the event loop that called open().
    """

    def __init__(
        self,
        *,
        read_timeout_s: float = 0.1,
        bus: Optional[ChannelBus] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.read_timeout_s = read_timeout_s
        self._log = logger or logging.getLogger(__name__)
        self._bus = bus or ChannelBus(logger=self._log)
        self._framer = LineFramer()

        self._ser: Optional[serial.Serial] = None
        self._reader: Optional[asyncio.Task] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def bus(self) -> ChannelBus:
        return self._bus

    @property
    def is_open(self) -> bool:
        return self._ser is not None

    def listen(self, channel: Channel, handler: EventHandler) -> Unsubscribe:
        return self._bus.listen(channel, handler)

    async def list_ports(self) -> List[PortDescriptor]:
        try:
            infos = await asyncio.to_thread(list_ports.comports)
        except (SerialException, OSError) as e:
            raise TransportEnumerationError(str(e)) from None
        return [PortDescriptor(name=p.device, kind=port_kind(p)) for p in infos]

    async def open(self, port: str, baud_rate: int) -> None:
        # open/close run one at a time so overlapping connects never orphan a port
        async with self._io_lock():
            if self._ser is not None:
                self._log.info("SERIAL_REOPEN closing previous port")
                await self._close_locked()

            try:
                ser = await asyncio.to_thread(
                    serial.Serial,
                    port,
                    baudrate=baud_rate,
                    timeout=self.read_timeout_s,
                    write_timeout=self.read_timeout_s,
                )
            except (SerialException, ValueError) as e:
                raise TransportOpenError(f"Failed to open port: {e}") from None

            self._ser = ser
            self._framer.reset()
            self._reader = asyncio.create_task(self._read_loop(ser))
            self._log.info("SERIAL_OPEN port=%s baud=%d", port, baud_rate)

    async def close(self) -> None:
        async with self._io_lock():
            await self._close_locked()

    async def send_wakeup(self) -> None:
        ser = self._ser
        if ser is None:
            raise TransportIOError("Not connected to a serial port")
        try:
            await asyncio.to_thread(ser.write, b"\n")
            await asyncio.to_thread(ser.flush)
        except (SerialException, OSError) as e:
            raise TransportIOError(f"Failed to send wakeup: {e}") from None

    def _io_lock(self) -> asyncio.Lock:
        # created lazily so it binds to the loop that first uses the link
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def _close_locked(self) -> None:
        reader, self._reader = self._reader, None
        ser, self._ser = self._ser, None

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        self._framer.reset()

        if ser is None:
            return
        try:
            await asyncio.to_thread(ser.close)
        except (SerialException, OSError) as e:
            raise TransportIOError(f"Failed to close port: {e}") from None
        self._log.info("SERIAL_CLOSED")

    async def _read_loop(self, ser: serial.Serial) -> None:
        partial = b""
        while True:
            try:
                chunk = await asyncio.to_thread(ser.readline)
            except (SerialException, OSError) as e:
                self._log.warning("SERIAL_READ_FAILED err=%s", e)
                await self._fail_reader(ser, e)
                return
            except Exception as e:
                self._log.exception("SERIAL_READER_EXCEPTION port=%s", getattr(ser, "port", None))
                await self._fail_reader(ser, e)
                return

            if not chunk:
                # timeout reached with nothing buffered
                continue

            # readline() returns a partial line on timeout
            if not chunk.endswith(b"\n"):
                partial += chunk
                if len(partial) > MAX_LINE_BYTES:
                    self._log.warning("SERIAL_LINE_OVERFLOW dropped=%d", len(partial))
                    self._bus.emit(
                        Channel.WARNING,
                        f"Discarded {len(partial)} bytes without a line terminator",
                    )
                    partial = b""
                continue

            raw, partial = partial + chunk, b""
            self._dispatch_line(raw.decode("utf-8", errors="replace").rstrip())

    async def _fail_reader(self, ser: serial.Serial, error: Exception) -> None:
        await self._release_after_read_error(ser)
        self._bus.emit(Channel.ERROR, f"Error reading: {error}")

    async def _release_after_read_error(self, ser: serial.Serial) -> None:
        if self._ser is ser:
            self._ser = None
            self._reader = None
            self._framer.reset()
        try:
            await asyncio.to_thread(ser.close)
        except (SerialException, OSError):
            self._log.exception("Failed to close serial port after read error")

    def _dispatch_line(self, line: str) -> None:
        for channel, payload in self._framer.feed(line):
            self._bus.emit(channel, payload)
