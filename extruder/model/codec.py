# extruder/model/codec.py
from __future__ import annotations

from typing import Any, Dict, List

from extruder.core.errors import RecordDecodeError
from .record import RECORD_COLUMNS, SystemStatus, TelemetryRecord

FIELD_COUNT = len(RECORD_COLUMNS)

# integer columns are 32-bit signed on the device
INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def is_header_line(line: str) -> bool:
    """The column header starts with TIME and names the first heater columns."""
    upper = line.upper()
    return upper.startswith("TIME") and "SETT1" in upper and "TEMP1" in upper


def split_fields(line: str) -> List[str]:
    # Tab-delimited first, whitespace otherwise
    if "\t" in line:
        return line.split("\t")
    return line.split()


def _parse_field(raw: str, index: int, label: str, cast: type) -> Any:
    text = raw.strip()
    try:
        # int()/float() accept digit separators, the firmware never sends them
        if "_" in text:
            raise ValueError(text)
        value = cast(text)
        if cast is int and not INT_MIN <= value <= INT_MAX:
            raise ValueError(text)
        return value
    except ValueError:
        raise RecordDecodeError(
            f"Failed to parse field {label} ('{raw}') at position {index}",
            details={"index": index, "field": label, "value": raw},
        ) from None


def parse_record(line: str) -> TelemetryRecord:
    """
    Decode one data line into a TelemetryRecord.

    Columns beyond the known set are ignored.
    """
    parts = split_fields(line)
    if len(parts) < FIELD_COUNT:
        raise RecordDecodeError(
            f"Expected at least {FIELD_COUNT} fields, got {len(parts)}. Line: '{line}'",
            details={"fields": len(parts)},
        )

    values: Dict[str, Any] = {}
    for index, (name, label, cast) in enumerate(RECORD_COLUMNS):
        raw = parts[index]
        if cast is SystemStatus:
            values[name] = SystemStatus.parse(raw)
        else:
            values[name] = _parse_field(raw, index, label, cast)

    return TelemetryRecord(**values)
