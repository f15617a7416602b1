# acmbridge/cli/main.py
from __future__ import annotations

from typing import Optional

from acmbridge.core.errors import BridgeError

from acmbridge.cli.args import parse_args
from acmbridge.cli.commands import (
    cmd_bridge,
    cmd_monitor,
    cmd_probe,
    setup_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        setup_logging(args)

        if args.cmd == "bridge":
            return cmd_bridge(args)
        if args.cmd == "monitor":
            return cmd_monitor(args)
        if args.cmd == "probe":
            return cmd_probe(args)

        return 2
    except BridgeError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
