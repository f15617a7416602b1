# acmbridge/protocol/correlation.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol as TypingProtocol

from .core.frame import Endpoint
from .core.messages import Message
from .errors import ProtocolError
from ._internal.pending_request import PendingRequest

MAX_IDEX = 2**31 - 1


class CorrelationListener(TypingProtocol):
    """Receives round-trip outcomes (implemented by GatewayStatistics)."""
    def record_resolved(self, rtt_ms: float) -> None: ...
    def record_expired(self, count: int = 1) -> None: ...


class CorrelationTracker:
    """
    Tracks outstanding M2 requests by idex.

    Only diagnostics depend on it (round-trip time, lost replies); forwarding
    itself is stateless per frame.
    """

    def __init__(
        self,
        timeout_s: float = 5.0,
        *,
        first_idex: int = 1,
        clock: Callable[[], float] = time.monotonic,
        listener: Optional[CorrelationListener] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.timeout_s = float(timeout_s)
        self._clock = clock
        self.listener = listener
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._pending: Dict[int, PendingRequest] = {}
        self._next = int(first_idex)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, idex: int) -> bool:
        with self._lock:
            return idex in self._pending

    def next_idex(self) -> int:
        """Hand out a fresh idex that is not currently in flight."""
        with self._lock:
            for _ in range(len(self._pending) + 1):
                idex = self._next
                self._next = 1 if self._next >= MAX_IDEX else self._next + 1
                if idex not in self._pending:
                    return idex
        raise ProtocolError("no free idex available")

    def register(self, idex: int, endpoint: Endpoint, *, command: str = "") -> PendingRequest:
        pending = PendingRequest(
            idex,
            endpoint,
            self.timeout_s,
            command=command,
            sent_at=self._clock(),
        )
        with self._lock:
            if pending.idex in self._pending:
                raise ProtocolError(f"idex {pending.idex} already in flight")
            self._pending[pending.idex] = pending

        self._log.debug("REQUEST_REGISTERED idex=%d endpoint=%s", pending.idex, endpoint.value)
        return pending

    def resolve(self, idex: int, response: Optional[Message] = None) -> Optional[PendingRequest]:
        with self._lock:
            pending = self._pending.pop(idex, None)
        if pending is None:
            return None

        now = self._clock()
        rtt_ms = pending.elapsed_ms(now)
        pending.set_result(response, "ok", now=now)
        if self.listener is not None:
            self.listener.record_resolved(rtt_ms)
        self._log.debug("REQUEST_RESOLVED idex=%d rtt_ms=%.1f", idex, rtt_ms)
        return pending

    def discard(self, idex: int) -> Optional[PendingRequest]:
        """Forget a request that never made it onto the wire."""
        with self._lock:
            pending = self._pending.pop(idex, None)
        if pending is not None:
            pending.set_result(None, "send_failed")
        return pending

    def expire(self, now: Optional[float] = None) -> List[PendingRequest]:
        now = self._clock() if now is None else now
        expired: List[PendingRequest] = []

        with self._lock:
            for idex, pending in list(self._pending.items()):
                if pending.is_expired(now):
                    expired.append(pending)
                    del self._pending[idex]

        for pending in expired:
            pending.set_result(None, "timeout", now=now)
            self._log.warning(
                "REQUEST_EXPIRED idex=%d command=%r waited_ms=%.0f",
                pending.idex,
                pending.command,
                pending.elapsed_ms(now),
            )
        if expired and self.listener is not None:
            self.listener.record_expired(len(expired))
        return expired
