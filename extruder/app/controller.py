# extruder/app/controller.py
from __future__ import annotations

import logging
from typing import Optional

from extruder.app.config import ExtruderConfig
from extruder.interfaces.device_link import DeviceLink
from extruder.runtime.diagnostics import DiagnosticLog
from extruder.runtime.session import SessionController
from extruder.runtime.state import SessionState
from extruder.runtime.telemetry import TelemetryState
from extruder.transport.serial_link import SerialDeviceLink


class ExtruderController:
    """
    App-level composition root.

    Builds the state objects once and hands them explicitly to the session
    controller; the UI reads them through the properties below.
    """

    def __init__(
        self,
        config: Optional[ExtruderConfig] = None,
        *,
        link: Optional[DeviceLink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or ExtruderConfig()
        self._log = logger or logging.getLogger(__name__)

        self._link = link if link is not None else SerialDeviceLink(
            read_timeout_s=self._config.read_timeout_s,
            logger=self._log,
        )

        self._state = SessionState(
            selected_port=self._config.port,
            baud_rate=self._config.baud_rate,
        )
        self._telemetry = TelemetryState(history_capacity=self._config.history_capacity)
        self._diagnostics = DiagnosticLog(capacity=self._config.warning_capacity)

        self._session = SessionController(
            link=self._link,
            state=self._state,
            telemetry=self._telemetry,
            diagnostics=self._diagnostics,
            logger=self._log,
        )

    @property
    def config(self) -> ExtruderConfig:
        return self._config

    @property
    def link(self) -> DeviceLink:
        return self._link

    @property
    def session(self) -> SessionController:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def telemetry(self) -> TelemetryState:
        return self._telemetry

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._diagnostics

    async def shutdown(self) -> None:
        try:
            await self._session.shutdown()
        except Exception:
            self._log.exception("CONTROLLER_SHUTDOWN_ERROR")

    async def __aenter__(self) -> "ExtruderController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
