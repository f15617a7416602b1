# acmbridge/runtime/stats.py
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

from acmbridge.protocol.core.frame import Endpoint
from acmbridge.runtime.state import StatisticsSnapshot

# Error kinds; every kind also bumps the `errors` total.
OVERFLOW = "overflow"
DECODE = "decode"
IO = "io"
WRITE = "write"
INTERNAL = "internal"


class GatewayStatistics:
    """
    Monotonic gateway counters guarded by a single lock.

    One instance is owned by the Gateway and injected into both pumps.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()

        self.started_at = clock()
        self.started_wall = time.time()

        self._front_end_frames = 0
        self._back_end_frames = 0
        self._errors = 0
        self._errors_by_kind: Dict[str, int] = {}
        self._rejected = 0
        self._resolved = 0
        self._expired = 0
        self._last_rtt_ms: Optional[float] = None

    # ---------------- Mutators ----------------
    def record_frame(self, endpoint: Endpoint) -> None:
        with self._lock:
            if endpoint is Endpoint.FRONT_END:
                self._front_end_frames += 1
            else:
                self._back_end_frames += 1

    def record_error(self, kind: str = INTERNAL) -> None:
        with self._lock:
            self._errors += 1
            self._errors_by_kind[kind] = self._errors_by_kind.get(kind, 0) + 1

    def record_rejected(self) -> None:
        with self._lock:
            self._rejected += 1

    def record_resolved(self, rtt_ms: float) -> None:
        with self._lock:
            self._resolved += 1
            self._last_rtt_ms = float(rtt_ms)

    def record_expired(self, count: int = 1) -> None:
        with self._lock:
            self._expired += int(count)

    # ---------------- Readers ----------------
    @property
    def errors(self) -> int:
        with self._lock:
            return self._errors

    def snapshot(self) -> StatisticsSnapshot:
        with self._lock:
            by_kind = dict(self._errors_by_kind)
            return StatisticsSnapshot(
                front_end_frames=self._front_end_frames,
                back_end_frames=self._back_end_frames,
                errors=self._errors,
                uptime_s=max(0.0, self._clock() - self.started_at),
                rejected_commands=self._rejected,
                overflows=by_kind.get(OVERFLOW, 0),
                decode_failures=by_kind.get(DECODE, 0),
                io_errors=by_kind.get(IO, 0) + by_kind.get(WRITE, 0),
                resolved_requests=self._resolved,
                expired_requests=self._expired,
                last_rtt_ms=self._last_rtt_ms,
                errors_by_kind=by_kind,
            )
