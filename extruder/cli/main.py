# extruder/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from extruder.app.config import ExtruderConfig, load_config
from extruder.core.errors import ExtruderError

from extruder.cli.args import parse_args
from extruder.cli.commands import (
    cmd_monitor,
    cmd_ports,
    configure_file_logging,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)

        configure_logging(verbose=args.verbose)
        if args.log_file:
            configure_file_logging(Path(args.log_file))

        cfg = load_config(args.config) if args.config else ExtruderConfig()

        if args.cmd == "ports":
            return cmd_ports(cfg)

        if args.cmd == "monitor":
            cfg = cfg.with_overrides(port=args.port, baud_rate=args.baud)
            return cmd_monitor(cfg, secs=args.secs, wakeup=args.wakeup)

        return 2
    except ExtruderError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
