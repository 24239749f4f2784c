# extruder/runtime/session.py
from __future__ import annotations

import logging
from typing import List, Optional

from extruder.core.errors import ConfigError, SubscriptionError
from extruder.interfaces.device_link import DeviceLink
from extruder.model.record import PortDescriptor
from extruder.runtime.diagnostics import DiagnosticLog
from extruder.runtime.router import EventRouter
from extruder.runtime.state import SessionState, SessionStatus, parse_baud_rate
from extruder.runtime.telemetry import TelemetryState
from extruder.transport.errors import TransportError

_INTENT_CONNECT = "connect"
_INTENT_DISCONNECT = "disconnect"


class SessionController:
    """
    Owns the single logical connection to the device layer.

    Connection state and channel subscriptions move together: the router is
    subscribed exactly while state.is_connected is True. Transport failures
    never propagate to the caller; they are reported through
    state.last_error.

    Overlapping requests are resolved by intent: every connect()/disconnect()
    takes a new intent number, and a connect() whose open completes after a
    newer request was issued does not apply its result.
    """

    def __init__(
        self,
        *,
        link: DeviceLink,
        state: Optional[SessionState] = None,
        telemetry: Optional[TelemetryState] = None,
        diagnostics: Optional[DiagnosticLog] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._link = link
        self._state = state if state is not None else SessionState()
        self._telemetry = telemetry if telemetry is not None else TelemetryState()
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._log = logger or logging.getLogger(__name__)

        self._router = EventRouter(
            link=link,
            session=self._state,
            telemetry=self._telemetry,
            diagnostics=self._diagnostics,
            on_error=self.handle_transport_error,
            logger=self._log,
        )

        self._intent_seq = 0
        self._intent = _INTENT_DISCONNECT
        self._connects_in_flight = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def telemetry(self) -> TelemetryState:
        return self._telemetry

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._diagnostics

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def connect_in_flight(self) -> bool:
        return self._connects_in_flight > 0

    def status(self) -> SessionStatus:
        st = self._state
        return SessionStatus(
            is_connected=st.is_connected,
            selected_port=st.selected_port,
            baud_rate=st.baud_rate,
            last_error=st.last_error,
            ports=tuple(st.ports),
            raw_line_count=len(st.raw_lines),
            subscriptions=self._router.subscription_count,
        )

    # --- selection (effective only while disconnected) ---
    def select_port(self, name: str) -> bool:
        if self._selection_locked():
            self._log.warning("SELECT_PORT_IGNORED port=%s reason=session_active", name)
            return False
        self._state.selected_port = name
        return True

    def set_baud_rate(self, rate: str) -> bool:
        if self._selection_locked():
            self._log.warning("SET_BAUD_IGNORED baud=%s reason=session_active", rate)
            return False
        self._state.baud_rate = str(rate)
        return True

    # --- buffer-clear operations ---
    def clear_raw_output(self) -> None:
        self._state.clear_raw_lines()

    def clear_history(self) -> None:
        self._telemetry.clear_history()

    def clear_warnings(self) -> None:
        self._diagnostics.clear()

    # --- transport operations ---
    async def list_ports(self) -> List[PortDescriptor]:
        try:
            ports = await self._link.list_ports()
        except Exception as e:
            self._fail("LIST_PORTS_FAILED", f"Failed to load ports: {e}", e)
            return list(self._state.ports)

        self._state.ports = list(ports)
        if self._state.ports and not self._state.selected_port:
            self._state.selected_port = self._state.ports[0].name
            self._log.info("PORT_AUTOSELECTED port=%s", self._state.selected_port)

        self._log.info("PORTS_LISTED count=%d", len(self._state.ports))
        return list(self._state.ports)

    async def connect(self) -> bool:
        st = self._state
        if st.is_connected:
            self._log.debug("CONNECT_SKIPPED already_connected port=%s", st.selected_port)
            return True

        if not st.selected_port:
            st.last_error = "Please select a port"
            self._log.warning("CONNECT_REJECTED reason=no_port")
            return False

        try:
            baud = parse_baud_rate(st.baud_rate)
        except ConfigError as e:
            st.last_error = e.message
            self._log.warning("CONNECT_REJECTED reason=bad_baud baud=%s", st.baud_rate)
            return False

        port = st.selected_port
        st.last_error = ""
        st.clear_raw_lines()
        token = self._begin(_INTENT_CONNECT)
        self._connects_in_flight += 1
        self._log.info("SESSION_CONNECT port=%s baud=%d", port, baud)

        try:
            await self._link.open(port, baud)
        except Exception as e:
            if self._is_current(token):
                self._fail("CONNECT_FAILED", f"Connection failed: {e}", e)
            else:
                self._log.info("CONNECT_FAILED_STALE port=%s err=%s", port, e)
            return False
        finally:
            self._connects_in_flight -= 1

        if not self._is_current(token):
            self._log.info("CONNECT_STALE port=%s intent=%s", port, self._intent)
            if self._intent == _INTENT_DISCONNECT:
                await self._close_quietly()
            return False

        # No await between the flag flip and subscription
        st.is_connected = True
        try:
            self._router.subscribe_all()
        except SubscriptionError as e:
            st.is_connected = False
            st.last_error = f"Connection failed: {e.message}"
            self._log.warning("CONNECT_ROLLBACK port=%s err=%s", port, e.hint or e.message)
            await self._close_quietly()
            return False

        self._log.info("SESSION_CONNECTED port=%s baud=%d", port, baud)
        return True

    async def disconnect(self) -> bool:
        self._begin(_INTENT_DISCONNECT)
        self._log.info("SESSION_DISCONNECT port=%s", self._state.selected_port)

        ok = True
        try:
            await self._link.close()
        except Exception as e:
            ok = False
            self._fail("DISCONNECT_FAILED", f"Disconnect failed: {e}", e)
        finally:
            self._teardown()
        return ok

    async def send_wakeup(self) -> bool:
        if not self._state.is_connected:
            self._state.last_error = "Not connected to a serial port"
            self._log.warning("WAKEUP_REJECTED reason=not_connected")
            return False

        self._state.last_error = ""
        try:
            await self._link.send_wakeup()
        except Exception as e:
            self._fail("WAKEUP_FAILED", f"Wakeup failed: {e}", e)
            return False

        self._log.info("WAKEUP_SENT")
        return True

    async def shutdown(self) -> None:
        if self._state.is_connected or self._connects_in_flight:
            await self.disconnect()
        else:
            self._router.unsubscribe_all()
        self._log.info("SESSION_SHUTDOWN")

    def handle_transport_error(self, message: str) -> None:
        """Error-channel path: same teardown as a manual disconnect."""
        self._log.warning("TRANSPORT_ERROR msg=%s", message)
        self._state.last_error = message or "Serial transport error"
        self._teardown()

    # --- internals ---
    def _begin(self, intent: str) -> int:
        self._intent_seq += 1
        self._intent = intent
        return self._intent_seq

    def _is_current(self, token: int) -> bool:
        return token == self._intent_seq

    def _selection_locked(self) -> bool:
        return self._state.is_connected or self._connects_in_flight > 0

    def _teardown(self) -> None:
        was_connected = self._state.is_connected
        self._state.is_connected = False
        self._router.unsubscribe_all()
        if was_connected:
            self._telemetry.reset()
            self._log.info("SESSION_CLOSED")

    def _fail(self, event: str, message: str, exc: BaseException) -> None:
        self._state.last_error = message
        if isinstance(exc, TransportError):
            self._log.warning("%s err=%s", event, exc)
        else:
            self._log.exception(event)

    async def _close_quietly(self) -> None:
        try:
            await self._link.close()
        except Exception as e:
            self._log.warning("LINK_CLOSE_FAILED err=%s", e)
