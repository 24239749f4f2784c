# extruder/runtime/telemetry.py
from __future__ import annotations

from typing import Optional, Tuple

from extruder.common.ring_buffer import RingBuffer
from extruder.model.record import TelemetryRecord

HISTORY_CAPACITY = 500


class TelemetryState:
    """
    Latest record, retained history window, and the banner/header captured
    at the start of a connection.
    """

    def __init__(self, history_capacity: int = HISTORY_CAPACITY):
        self._init_block = ""
        self._header = ""
        self._current: Optional[TelemetryRecord] = None
        self._history: RingBuffer[TelemetryRecord] = RingBuffer(history_capacity)

    @property
    def init_block(self) -> str:
        return self._init_block

    @property
    def header(self) -> str:
        return self._header

    @property
    def current(self) -> Optional[TelemetryRecord]:
        return self._current

    @property
    def history(self) -> Tuple[TelemetryRecord, ...]:
        return self._history.snapshot()

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    @property
    def sample_count(self) -> int:
        return len(self._history)

    def set_init_block(self, text: str) -> None:
        self._init_block = text

    def set_header(self, text: str) -> None:
        self._header = text

    def record_measurement(self, record: TelemetryRecord) -> None:
        # current and history change together; nothing runs in between
        self._current = record
        self._history.push(record)

    def clear_history(self) -> None:
        self._current = None
        self._history.clear()

    def reset(self) -> None:
        self._init_block = ""
        self._header = ""
        self._current = None
        self._history.clear()
