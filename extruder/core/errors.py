# extruder/core/errors.py
from __future__ import annotations


class ExtruderError(Exception):
    """
    Base class for all expected operational errors in the extruder host.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no hardware access yet)
# ---------------------------------------------------------------------------

class ConfigError(ExtruderError):
    """
    Configuration file or CLI override is invalid.

    Examples:
      - unknown key in the YAML file
      - non-numeric baud rate
      - history capacity below 1
    """
    code = "config_error"


class PreconditionError(ExtruderError):
    """
    Operation attempted while the session is not in a usable state.

    Examples:
      - connect() with no port selected
      - send_wakeup() while disconnected
    """
    code = "precondition_failed"


# ---------------------------------------------------------------------------
# Port / connection lifecycle errors
# ---------------------------------------------------------------------------

class PortEnumerationError(ExtruderError):
    """
    Listing candidate serial ports failed.
    """
    code = "port_enumeration_error"


class DeviceConnectError(ExtruderError):
    """
    Serial port could not be opened.

    Examples:
      - COM port not found
      - permission denied
      - device already in use
    """
    code = "device_connect_error"


class DeviceDisconnectError(ExtruderError):
    """
    The connection ended unexpectedly or closing the port failed.
    """
    code = "device_disconnect_error"


class WakeupError(ExtruderError):
    """
    Wakeup request could not be written to the device.
    """
    code = "wakeup_error"


class SubscriptionError(ExtruderError):
    """
    Registering a handler on one of the device event channels failed.
    """
    code = "subscription_error"


# ---------------------------------------------------------------------------
# Data errors
# ---------------------------------------------------------------------------

class RecordDecodeError(ExtruderError):
    """
    A data line was received but could not be decoded into a record.

    Examples:
      - fewer columns than the device header declares
      - non-numeric value in a numeric column
    """
    code = "record_decode_error"
