# extruder/runtime/router.py
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from extruder.core.errors import SubscriptionError
from extruder.interfaces.device_link import Channel, DeviceLink, EventHandler, Unsubscribe
from extruder.model.record import TelemetryRecord
from extruder.runtime.diagnostics import DiagnosticLog
from extruder.runtime.state import SessionState
from extruder.runtime.telemetry import TelemetryState

ErrorCallback = Callable[[str], None]  # (message)


class EventRouter:
    """
    Routes device channels into the session, telemetry and diagnostic state.

    Owns the subscription handles: one per channel while subscribed, none
    otherwise.
    """

    def __init__(
        self,
        *,
        link: DeviceLink,
        session: SessionState,
        telemetry: TelemetryState,
        diagnostics: DiagnosticLog,
        on_error: ErrorCallback,
        logger: Optional[logging.Logger] = None,
    ):
        self._link = link
        self._session = session
        self._telemetry = telemetry
        self._diagnostics = diagnostics
        self._on_error = on_error
        self._log = logger or logging.getLogger(__name__)

        self._handles: List[Tuple[Channel, Unsubscribe]] = []

    @property
    def is_subscribed(self) -> bool:
        return bool(self._handles)

    @property
    def subscription_count(self) -> int:
        return len(self._handles)

    def routes(self) -> Dict[Channel, EventHandler]:
        return {
            Channel.RAW_LINE: self._on_raw_line,
            Channel.ERROR: self._on_error_event,
            Channel.INIT_BANNER: self._on_init_banner,
            Channel.HEADER: self._on_header,
            Channel.MEASUREMENT: self._on_measurement,
            Channel.WARNING: self._on_warning,
        }

    def subscribe_all(self) -> None:
        if self._handles:
            self._log.debug("SUBSCRIBE_SKIPPED already_subscribed=%d", len(self._handles))
            return

        registered: List[Tuple[Channel, Unsubscribe]] = []
        for channel, handler in self.routes().items():
            try:
                registered.append((channel, self._link.listen(channel, handler)))
            except Exception as e:
                self._log.warning("SUBSCRIBE_FAILED channel=%s err=%s", channel.value, e)
                self._release(registered)
                raise SubscriptionError(
                    f"Could not subscribe to '{channel.value}' events.",
                    hint=str(e),
                    details={"channel": channel.value, "registered": len(registered)},
                ) from e

        self._handles = registered
        self._log.info("SUBSCRIBED channels=%d", len(registered))

    def unsubscribe_all(self) -> None:
        # Detach first so a re-entrant or duplicate call sees an empty set
        handles, self._handles = self._handles, []
        if not handles:
            return
        self._release(handles)
        self._log.info("UNSUBSCRIBED channels=%d", len(handles))

    def _release(self, handles: List[Tuple[Channel, Unsubscribe]]) -> None:
        for channel, unsubscribe in handles:
            try:
                unsubscribe()
            except Exception:
                self._log.exception("UNSUBSCRIBE_ERROR channel=%s", channel.value)

    # --- channel handlers ---
    def _on_raw_line(self, line: str) -> None:
        self._session.append_raw_line(line)

    def _on_error_event(self, message: str) -> None:
        self._on_error(str(message))

    def _on_init_banner(self, text: str) -> None:
        self._telemetry.set_init_block(text)

    def _on_header(self, text: str) -> None:
        self._telemetry.set_header(text)

    def _on_measurement(self, record: TelemetryRecord) -> None:
        self._telemetry.record_measurement(record)

    def _on_warning(self, message: str) -> None:
        self._diagnostics.append(message)
