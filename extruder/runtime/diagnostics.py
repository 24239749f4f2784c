# extruder/runtime/diagnostics.py
from __future__ import annotations

from typing import Tuple

from extruder.common.ring_buffer import RingBuffer

WARNING_CAPACITY = 10
DISPLAY_COUNT = 3


class DiagnosticLog:
    """Most recent decoder warnings. Advisory only."""

    def __init__(self, capacity: int = WARNING_CAPACITY):
        self._messages: RingBuffer[str] = RingBuffer(capacity)

    @property
    def messages(self) -> Tuple[str, ...]:
        return self._messages.snapshot()

    def recent(self, n: int = DISPLAY_COUNT) -> Tuple[str, ...]:
        if n <= 0:
            return ()
        return self._messages.snapshot()[-n:]

    def append(self, message: str) -> None:
        self._messages.push(message)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
