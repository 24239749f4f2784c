# extruder/transport/bus.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from extruder.interfaces.device_link import Channel, EventHandler, Unsubscribe


class _Listener:
    __slots__ = ("handler",)

    def __init__(self, handler: EventHandler):
        self.handler = handler


class ChannelBus:
    """
    In-process fan-out of device events to per-channel listeners.

    Every listen() call creates its own registration, so registering the same
    callable twice yields two independent handles.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._listeners: Dict[Channel, List[_Listener]] = {ch: [] for ch in Channel}

    def listen(self, channel: Channel, handler: EventHandler) -> Unsubscribe:
        channel = Channel(channel)
        entry = _Listener(handler)
        self._listeners[channel].append(entry)

        def _unsubscribe() -> None:
            listeners = self._listeners[channel]
            if entry in listeners:
                listeners.remove(entry)

        return _unsubscribe

    def emit(self, channel: Channel, payload: Any) -> int:
        """
        Deliver payload to the listeners present when emit() started.

        A listener removed by an earlier handler during the same dispatch is
        skipped.
        """
        channel = Channel(channel)
        live = self._listeners[channel]
        entries = list(live)

        delivered = 0
        for entry in entries:
            if entry not in live:
                continue
            try:
                entry.handler(payload)
                delivered += 1
            except Exception:
                self._log.exception("CHANNEL_HANDLER_ERROR channel=%s", channel.value)
        return delivered

    def listener_count(self, channel: Optional[Channel] = None) -> int:
        if channel is not None:
            return len(self._listeners[Channel(channel)])
        return sum(len(v) for v in self._listeners.values())
