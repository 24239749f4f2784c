# extruder/transport/line_framer.py
from __future__ import annotations

from enum import Enum
from typing import Any, List, Tuple

from extruder.core.errors import RecordDecodeError
from extruder.interfaces.device_link import Channel
from extruder.model.codec import is_header_line, parse_record

Event = Tuple[Channel, Any]


class ParserState(Enum):
    INIT = "init"                       # collecting the boot banner
    HEADER_DETECTED = "header_detected"
    DATA_STREAMING = "data_streaming"


class LineFramer:
    """
    Turns received text lines into channel events.

    The controller prints a boot banner, then a column header, then one
    data row per sample. A header seen again mid-stream (controller reset)
    is re-announced.
    """

    def __init__(self) -> None:
        self.state = ParserState.INIT
        self._init_lines: List[str] = []

    def reset(self) -> None:
        self.state = ParserState.INIT
        self._init_lines = []

    def feed(self, line: str) -> List[Event]:
        events: List[Event] = [(Channel.RAW_LINE, line)]

        if self.state is ParserState.INIT:
            if is_header_line(line):
                self.state = ParserState.HEADER_DETECTED
                if self._init_lines:
                    events.append((Channel.INIT_BANNER, "\n".join(self._init_lines)))
                events.append((Channel.HEADER, line))
            else:
                self._init_lines.append(line)
            return events

        if is_header_line(line):
            events.append((Channel.HEADER, line))
            return events

        if not line.strip():
            return events

        try:
            record = parse_record(line)
        except RecordDecodeError as e:
            events.append((Channel.WARNING, f"Failed to parse data row: {e.message}"))
            return events

        self.state = ParserState.DATA_STREAMING
        events.append((Channel.MEASUREMENT, record))
        return events
