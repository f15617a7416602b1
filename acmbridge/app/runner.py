# acmbridge/app/runner.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from acmbridge.app.config import GatewayConfig, LinkConfig
from acmbridge.app.sinks import LoggingStatsSink
from acmbridge.interfaces.stats_sink import StatisticsSink
from acmbridge.runtime.gateway import Gateway
from acmbridge.runtime.state import StatisticsSnapshot
from acmbridge.transport.base import Transport
from acmbridge.transport.uart import DEFAULT_STOPBITS, UARTTransport


def build_transport(link: LinkConfig) -> UARTTransport:
    # stop bits are not taken from the link: the wire is always 8N2
    return UARTTransport(
        link.port,
        link.baudrate,
        bytesize=link.bytesize,
        parity=link.parity,
        stopbits=DEFAULT_STOPBITS,
        timeout=link.timeout,
    )


def build_gateway(
    cfg: GatewayConfig,
    *,
    front_end: Optional[Transport] = None,
    back_end: Optional[Transport] = None,
    stats_sinks: Optional[Sequence[StatisticsSink]] = None,
    logger: Optional[logging.Logger] = None,
) -> Gateway:
    """
    Wire a Gateway from config. Transports default to pyserial UARTs on the
    configured ports; statistics always go to the log.
    """
    log = logger or logging.getLogger(__name__)
    sinks = [LoggingStatsSink(logger=logging.getLogger("acmbridge.stats"))]
    sinks.extend(stats_sinks or [])

    return Gateway(
        front_end if front_end is not None else build_transport(cfg.front_end),
        back_end if back_end is not None else build_transport(cfg.back_end),
        config=cfg,
        stats_sinks=sinks,
        logger=log,
    )


def run_gateway(
    gateway: Gateway,
    *,
    duration_s: Optional[float] = None,
    stop_event: Optional[threading.Event] = None,
    poll_s: float = 0.2,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[StatisticsSnapshot]:
    """
    Run until `duration_s` elapsed, `stop_event` set or Ctrl+C, then stop the
    gateway and return the final statistics.
    """
    stop_event = stop_event or threading.Event()
    gateway.start()
    t0 = clock()
    try:
        while not stop_event.is_set():
            if duration_s is not None and clock() - t0 >= duration_s:
                break
            stop_event.wait(poll_s)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("INTERRUPTED")
    finally:
        final = gateway.stop()
    return final
