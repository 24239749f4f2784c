# extruder/cli/commands.py
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from extruder.app.config import ExtruderConfig
from extruder.app.controller import ExtruderController
from extruder.core.errors import (
    DeviceConnectError,
    DeviceDisconnectError,
    PortEnumerationError,
    PreconditionError,
    WakeupError,
)
from extruder.interfaces.device_link import Channel, DeviceLink
from extruder.model.record import TelemetryRecord

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------- Logging ----------------

def configure_logging(*, verbose: bool = False) -> None:
    root = logging.getLogger()
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(sh)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)


# ---------------- Printing ----------------

def format_record(rec: TelemetryRecord) -> str:
    return (
        f"t={rec.time:8.1f} status={rec.status.display():<8} "
        f"T=[{rec.temp1:.2f} {rec.temp2:.2f} {rec.temp3:.2f} {rec.temp4:.2f}] "
        f"rpm={rec.rpm:.0f} ft={rec.ft:.3f} len={rec.length:.1f}"
        f"{' FAULT' if rec.fault_active else ''}"
    )


def attach_printer(link: DeviceLink, out: Callable[[str], None] = print) -> List[Callable[[], None]]:
    """Print device events as they arrive. Returns the unsubscribe handles."""
    return [
        link.listen(Channel.INIT_BANNER, lambda text: out(f"INIT\n{text}")),
        link.listen(Channel.HEADER, lambda text: out(f"HEADER {text}")),
        link.listen(Channel.MEASUREMENT, lambda rec: out(format_record(rec))),
        link.listen(Channel.WARNING, lambda msg: out(f"WARN {msg}")),
    ]


# ---------------- Commands ----------------

async def list_ports_async(cfg: ExtruderConfig, *, link: Optional[DeviceLink] = None) -> int:
    async with ExtruderController(cfg, link=link) as app:
        ports = await app.session.list_ports()
        if app.state.last_error:
            raise PortEnumerationError(
                app.state.last_error,
                hint="Check that the serial driver is installed and the port is accessible.",
            )
        if not ports:
            print("(no serial ports found)")
            return 0
        for p in ports:
            print(f"{p.name}\t{p.kind}")
        return 0


async def monitor_async(
    cfg: ExtruderConfig,
    *,
    secs: Optional[float] = None,
    wakeup: bool = False,
    link: Optional[DeviceLink] = None,
    poll_s: float = 0.1,
) -> int:
    """
    Connect, print events until `secs` elapse, then disconnect.

    Failures are raised as ExtruderError subclasses; the controller is shut
    down on the way out either way.
    """
    async with ExtruderController(cfg, link=link) as app:
        session = app.session
        if not app.state.selected_port:
            await session.list_ports()

        if not await session.connect():
            if not app.state.selected_port:
                raise PreconditionError(app.state.last_error, hint="Pass --port or plug in the device.")
            raise DeviceConnectError(
                app.state.last_error,
                hint="Check the port name and that no other program holds it.",
                details={"port": app.state.selected_port, "baud_rate": app.state.baud_rate},
            )
        print(f"Connected to {app.state.selected_port} @ {app.state.baud_rate}")

        handles = attach_printer(app.link)
        try:
            if wakeup and not await session.send_wakeup():
                raise WakeupError(app.state.last_error, details={"port": app.state.selected_port})

            deadline = (time.monotonic() + secs) if secs else None
            while session.is_connected:
                if deadline is not None and time.monotonic() >= deadline:
                    break
                await asyncio.sleep(poll_s)
        finally:
            for unsubscribe in handles:
                unsubscribe()

        if not session.is_connected:
            raise DeviceDisconnectError(
                app.state.last_error,
                hint="The device stopped responding or was unplugged.",
                details={"port": app.state.selected_port},
            )

        print(f"Received {app.telemetry.sample_count} record(s)")
        return 0


def cmd_ports(cfg: ExtruderConfig) -> int:
    return asyncio.run(list_ports_async(cfg))


def cmd_monitor(cfg: ExtruderConfig, *, secs: Optional[float], wakeup: bool) -> int:
    try:
        return asyncio.run(monitor_async(cfg, secs=secs, wakeup=wakeup))
    except KeyboardInterrupt:
        return 0
