from .record import PortDescriptor, StatusKind, SystemStatus, TelemetryRecord
from .codec import is_header_line, parse_record

__all__ = ["PortDescriptor",
           "StatusKind",
           "SystemStatus",
           "TelemetryRecord",
           "is_header_line",
           "parse_record"]
