# acmbridge/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acmbridge",
        description="Serial gateway between an ACM command module and an STM32 game controller.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="YAML config file (defaults are used when omitted).")
    common.add_argument("--front-end", default=None, help="ACM serial port, e.g. /dev/ttyACM0.")
    common.add_argument("--back-end", default=None, help="STM32 serial port, e.g. /dev/ttyS3.")
    common.add_argument("--log-file", default=None, help="Also write the application log to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug-level console logging.")

    p_bridge = sub.add_parser("bridge", parents=[common], help="Translate and forward traffic in both directions.")
    p_bridge.add_argument("--duration", type=float, default=None, help="Seconds to run (default: until Ctrl+C).")
    p_bridge.add_argument(
        "--stats-interval",
        type=float,
        default=None,
        help="Seconds between statistics reports (0 = only the final report).",
    )

    p_monitor = sub.add_parser("monitor", parents=[common], help="Print frames from both ports without forwarding.")
    p_monitor.add_argument("--duration", type=float, default=None, help="Seconds to run (default: until Ctrl+C).")

    p_probe = sub.add_parser("probe", parents=[common], help="Send the test sequences and print the replies.")
    p_probe.add_argument(
        "--only",
        choices=("front-end", "back-end"),
        default=None,
        help="Probe a single side.",
    )
    p_probe.add_argument("--reply-timeout", type=float, default=1.0, help="Seconds to wait for each reply.")
    p_probe.add_argument("--pause", type=float, default=2.0, help="Seconds between the two probe phases.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
