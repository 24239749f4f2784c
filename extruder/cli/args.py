# extruder/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional


def _positive_float(v: str) -> float:
    try:
        value = float(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{v}'") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive number, got '{v}'")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="extruder", description="Filament extruder telemetry monitor")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="YAML config file.")
    common.add_argument("--log-file", default=None, help="Also write the application log to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug-level console logging.")

    sub.add_parser("ports", parents=[common], help="List serial ports.")

    pm = sub.add_parser("monitor", parents=[common], help="Connect and print telemetry.")
    pm.add_argument("-p", "--port", default=None, help="Serial port (first listed port if omitted).")
    pm.add_argument("-b", "--baud", default=None, help="Baud rate (default: 115200).")
    pm.add_argument("--secs", type=_positive_float, default=None, help="Stop after N seconds.")
    pm.add_argument("--wakeup", action="store_true", help="Send a wakeup newline after connecting.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
