from __future__ import annotations

class TransportError(Exception):
    """Base class for device-layer failures."""

class TransportOpenError(TransportError):
    pass

class TransportIOError(TransportError):
    pass

class TransportEnumerationError(TransportError):
    pass
