# extruder/app/config.py
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

from extruder.core.errors import ConfigError
from extruder.runtime.diagnostics import WARNING_CAPACITY
from extruder.runtime.state import DEFAULT_BAUD_RATE, parse_baud_rate
from extruder.runtime.telemetry import HISTORY_CAPACITY


@dataclass(frozen=True)
class ExtruderConfig:
    port: str = ""
    baud_rate: str = DEFAULT_BAUD_RATE
    history_capacity: int = HISTORY_CAPACITY
    warning_capacity: int = WARNING_CAPACITY
    read_timeout_s: float = 0.1

    def __post_init__(self) -> None:
        for name in ("history_capacity", "warning_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(
                    f"Invalid value for '{name}': {value!r}",
                    hint="Capacities must be positive integers.",
                    details={"key": name, "value": value},
                )
        if isinstance(self.read_timeout_s, bool) or not isinstance(self.read_timeout_s, (int, float)) \
                or self.read_timeout_s <= 0:
            raise ConfigError(
                f"Invalid value for 'read_timeout_s': {self.read_timeout_s!r}",
                hint="Use a positive number of seconds.",
                details={"key": "read_timeout_s", "value": self.read_timeout_s},
            )
        if not isinstance(self.port, str):
            raise ConfigError(f"Invalid value for 'port': {self.port!r}", details={"key": "port"})
        # YAML may give the baud rate as an int
        object.__setattr__(self, "baud_rate", str(self.baud_rate))
        parse_baud_rate(self.baud_rate)

    def with_overrides(self, **overrides: Any) -> "ExtruderConfig":
        """Apply CLI overrides; None means "not given"."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        _check_keys(changes)
        return replace(self, **changes)


def _check_keys(data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(ExtruderConfig)}
    for key in data:
        if key not in known:
            raise ConfigError(
                f"Unknown config key '{key}'.",
                hint=f"Valid keys: {sorted(known)}",
                details={"key": key},
            )


def load_config(path: str | Path) -> ExtruderConfig:
    """Load an ExtruderConfig from YAML. An empty file yields the defaults."""
    full_path = Path(path)
    if not full_path.exists():
        raise ConfigError(f"Missing config file: {full_path}", details={"path": str(full_path)})

    try:
        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Could not parse config file: {full_path}",
            hint=str(e),
            details={"path": str(full_path)},
        ) from None

    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must contain a mapping: {full_path}",
            details={"path": str(full_path)},
        )

    _check_keys(data)
    return ExtruderConfig(**data)
