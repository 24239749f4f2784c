"""Host-side telemetry session core for the filament extruder controller."""

__version__ = "0.1.0"
