# acmbridge/cli/commands.py
from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from acmbridge.app.config import GatewayConfig, load_config
from acmbridge.app.probe import probe_back_end, probe_front_end
from acmbridge.app.runner import build_gateway, build_transport, run_gateway
from acmbridge.core.errors import DeviceConnectError
from acmbridge.interfaces import FrameEvent, FrameSink
from acmbridge.runtime.state import StatisticsSnapshot
from acmbridge.transport.base import Transport
from acmbridge.transport.errors import TransportError


# ---------------- Frame printing ----------------

class PrintFrameSink(FrameSink):
    """Print captured frames to stdout with a local timestamp."""

    def on_frame(self, event: FrameEvent) -> None:
        frame = event.frame
        ts = datetime.fromtimestamp(frame.captured_at).strftime("%H:%M:%S.%f")[:-3]
        tag = f" {event.msg_type}" if event.msg_type else ""
        print(f"[{ts}] {frame.endpoint.value.upper()}{tag} ({len(frame)} bytes): {frame.text()}")

    def close(self) -> None:
        return None

# ---------------- Logging ----------------

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_console_logging(verbose: bool = False) -> None:
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO

    for h in root.handlers:
        if getattr(h, "_acmbridge_console", False):
            h.setLevel(level)
            break
    else:
        ch = logging.StreamHandler()
        ch._acmbridge_console = True  # type: ignore[attr-defined]
        ch.setLevel(level)
        ch.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(ch)

    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)


def setup_logging(args) -> None:
    configure_console_logging(bool(getattr(args, "verbose", False)))
    if getattr(args, "log_file", None):
        configure_file_logging(Path(args.log_file))

# ---------------- Config ----------------

def effective_config(args) -> GatewayConfig:
    """YAML file (optional) overridden by the port flags."""
    cfg = load_config(args.config)
    cfg = cfg.with_ports(front_end=args.front_end, back_end=args.back_end)
    interval = getattr(args, "stats_interval", None)
    if interval is not None:
        cfg = replace(cfg, stats_interval_s=float(interval))
    return cfg

# ---------------- Printing ----------------

def print_statistics(snap: Optional[StatisticsSnapshot], *, title: str = "Final statistics") -> None:
    if snap is None:
        return
    print(f"\n{title}:")
    print(f"  Uptime:         {snap.uptime_s:.1f}s")
    print(f"  ACM frames:     {snap.front_end_frames} ({snap.front_end_rate:.2f}/s)")
    print(f"  STM32 frames:   {snap.back_end_frames} ({snap.back_end_rate:.2f}/s)")
    print(f"  Errors:         {snap.errors} ({snap.error_rate_pct:.2f}%)")
    print(f"  Rejected cmds:  {snap.rejected_commands}")
    if snap.errors_by_kind:
        kinds = ", ".join(f"{k}={v}" for k, v in sorted(snap.errors_by_kind.items()))
        print(f"  Error kinds:    {kinds}")
    if snap.resolved_requests or snap.expired_requests:
        rtt = f"{snap.last_rtt_ms:.1f}ms" if snap.last_rtt_ms is not None else "-"
        print(f"  Requests:       resolved={snap.resolved_requests} expired={snap.expired_requests} last_rtt={rtt}")

# ---------------- Commands ----------------

def cmd_bridge(args) -> int:
    cfg = effective_config(args)
    gateway = build_gateway(cfg)

    print(f"Bridging ACM {cfg.front_end.port} <-> STM32 {cfg.back_end.port} (Ctrl+C to stop)")
    try:
        final = run_gateway(gateway, duration_s=args.duration)
    finally:
        gateway.close()
    print_statistics(final)
    return 0


def cmd_monitor(args) -> int:
    cfg = replace(effective_config(args), forward=False)
    gateway = build_gateway(cfg)
    gateway.add_frame_sink(PrintFrameSink())

    print(f"Monitoring ACM {cfg.front_end.port} and STM32 {cfg.back_end.port} (no forwarding)")
    try:
        final = run_gateway(gateway, duration_s=args.duration)
    finally:
        gateway.close()
    print_statistics(final, title="Monitor statistics")
    return 0


def _open_for_probe(transport: Transport, side: str) -> None:
    try:
        transport.open()
    except TransportError as e:
        raise DeviceConnectError(
            f"Could not open {side} port {transport.name}.",
            hint=str(e),
            details={"endpoint": side, "port": transport.name},
        ) from None


def _print_probe(results) -> int:
    failed = 0
    for r in results:
        d = r.as_dict()
        print(f"  -> {d['sent'].rstrip()}")
        if r.error:
            print(f"     ERROR: {r.error}")
        elif not r.replies:
            print(f"     (no reply within {d['elapsed_ms']:.0f}ms)")
        for reply in d["replies"]:
            print(f"     <- {reply}")
        if not r.ok:
            failed += 1
    return failed


def cmd_probe(args) -> int:
    cfg = effective_config(args)
    failed = 0

    if args.only in (None, "front-end"):
        print(f"ACM command probe on {cfg.front_end.port}:")
        transport = build_transport(cfg.front_end)
        _open_for_probe(transport, "acm")
        try:
            failed += _print_probe(probe_front_end(transport, reply_timeout_s=args.reply_timeout))
        finally:
            transport.close()

    if args.only is None and args.pause > 0:
        time.sleep(args.pause)

    if args.only in (None, "back-end"):
        print(f"STM32 message probe on {cfg.back_end.port}:")
        transport = build_transport(cfg.back_end)
        _open_for_probe(transport, "stm32")
        try:
            failed += _print_probe(probe_back_end(transport, reply_timeout_s=args.reply_timeout))
        finally:
            transport.close()

    print(f"\nProbe finished: {failed} exchange(s) without a reply.")
    return 0
