# extruder/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from extruder.core.errors import ConfigError
from extruder.model.record import PortDescriptor

DEFAULT_BAUD_RATE = "115200"


def parse_baud_rate(text: str) -> int:
    """Baud rate is kept as text for the UI and parsed only when opening."""
    try:
        value = int(str(text).strip())
    except ValueError:
        value = 0
    if value <= 0:
        raise ConfigError(
            f"Invalid baud rate '{text}'",
            hint="Use a positive integer such as 115200.",
            details={"baud_rate": text},
        )
    return value


@dataclass
class SessionState:
    """
    Connection-scoped state of the single serial session.

    Mutated only by the SessionController and its EventRouter.
    raw_lines is the unbounded serial-monitor buffer.
    """
    is_connected: bool = False
    selected_port: str = ""
    baud_rate: str = DEFAULT_BAUD_RATE
    last_error: str = ""
    ports: List[PortDescriptor] = field(default_factory=list)
    raw_lines: List[str] = field(default_factory=list)

    def append_raw_line(self, line: str) -> None:
        self.raw_lines.append(line)

    def clear_raw_lines(self) -> None:
        self.raw_lines.clear()


@dataclass(frozen=True)
class SessionStatus:
    """
    A snapshot of the session, safe to hand to a UI.
    """
    is_connected: bool
    selected_port: str
    baud_rate: str
    last_error: str
    ports: Tuple[PortDescriptor, ...]
    raw_line_count: int
    subscriptions: int
