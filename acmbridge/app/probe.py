# acmbridge/app/probe.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from acmbridge.protocol.core.assembler import REPLY_DELIMITERS, FrameAssembler
from acmbridge.protocol.core.codec import BackEndCodec
from acmbridge.protocol.core.frame import Endpoint
from acmbridge.protocol.core.messages import (
    DataMessage,
    IndexedMessage,
    Message,
    PassthroughMessage,
    StatusMessage,
)
from acmbridge.transport.base import Transport
from acmbridge.transport.errors import TransportError

PROBE_LINE_ENDING = b"\r\n"

DEFAULT_COMMANDS: Tuple[str, ...] = ("ver", "sta", "algo -b 1 -p 100", "help")


def default_messages() -> List[Message]:
    return [
        DataMessage(data={"cfgData": {"hp30": 1}}),
        IndexedMessage(idex=1000, data={"test": "hello"}),
        StatusMessage(action="wait"),
        PassthroughMessage(toptype=0, data=""),
    ]


@dataclass(frozen=True)
class ProbeResult:
    """One probe exchange: what was sent and every reply frame read back."""
    endpoint: str
    sent: bytes
    replies: Tuple[bytes, ...] = ()
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.replies)

    def as_dict(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "sent": self.sent.decode("utf-8", errors="replace"),
            "replies": [r.decode("utf-8", errors="replace") for r in self.replies],
            "elapsed_ms": round(self.elapsed_ms, 1),
            "error": self.error,
        }


def _exchange(
    transport: Transport,
    endpoint: Endpoint,
    data: bytes,
    *,
    reply_timeout_s: float,
    read_size: int,
    clock: Callable[[], float],
    log: logging.Logger,
) -> ProbeResult:
    # Replies are either JSON lines ("\r\n") or ACM prompts ("\n>").
    assembler = FrameAssembler(endpoint, REPLY_DELIMITERS, logger=log)
    t0 = clock()
    try:
        transport.write(data)
    except TransportError as e:
        log.warning("PROBE_WRITE_FAILED endpoint=%s err=%s", endpoint.value, e)
        return ProbeResult(endpoint.value, data, error=str(e))

    replies: List[bytes] = []
    error: Optional[str] = None
    while clock() - t0 < reply_timeout_s:
        try:
            chunk = transport.read(read_size)
        except TransportError as e:
            error = str(e)
            log.warning("PROBE_READ_FAILED endpoint=%s err=%s", endpoint.value, e)
            break
        replies.extend(f.payload for f in assembler.feed(chunk))
        if replies:
            break

    elapsed_ms = (clock() - t0) * 1000.0
    log.info("PROBE endpoint=%s sent=%r replies=%d elapsed_ms=%.0f", endpoint.value, data, len(replies), elapsed_ms)
    return ProbeResult(endpoint.value, data, tuple(replies), elapsed_ms, error)


def probe_front_end(
    transport: Transport,
    commands: Sequence[str] = DEFAULT_COMMANDS,
    *,
    reply_timeout_s: float = 1.0,
    read_size: int = 1024,
    clock: Callable[[], float] = time.monotonic,
    logger: Optional[logging.Logger] = None,
) -> List[ProbeResult]:
    """Send each ACM command on an open transport and collect the reply up to the prompt."""
    log = logger or logging.getLogger(__name__)
    return [
        _exchange(
            transport,
            Endpoint.FRONT_END,
            cmd.encode("utf-8") + PROBE_LINE_ENDING,
            reply_timeout_s=reply_timeout_s,
            read_size=read_size,
            clock=clock,
            log=log,
        )
        for cmd in commands
    ]


def probe_back_end(
    transport: Transport,
    messages: Optional[Sequence[Message]] = None,
    *,
    reply_timeout_s: float = 1.0,
    read_size: int = 1024,
    clock: Callable[[], float] = time.monotonic,
    logger: Optional[logging.Logger] = None,
) -> List[ProbeResult]:
    """Send sample STM32 messages (M1, M2, M4, M6 by default) and collect any replies."""
    log = logger or logging.getLogger(__name__)
    codec = BackEndCodec(logger=log)
    return [
        _exchange(
            transport,
            Endpoint.BACK_END,
            codec.encode(msg),
            reply_timeout_s=reply_timeout_s,
            read_size=read_size,
            clock=clock,
            log=log,
        )
        for msg in (default_messages() if messages is None else messages)
    ]
