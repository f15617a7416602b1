# acmbridge/runtime/state.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Optional


class GatewayState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class LinkState:
    """
    Runtime state of one serial link.
    """
    endpoint: str
    port: str
    connected: bool
    last_error: Optional[str] = None


@dataclass(frozen=True)
class StatisticsSnapshot:
    """
    Read-only copy of the gateway counters, safe to hand to other threads.
    """
    front_end_frames: int
    back_end_frames: int
    errors: int
    uptime_s: float
    rejected_commands: int = 0
    overflows: int = 0
    decode_failures: int = 0
    io_errors: int = 0
    resolved_requests: int = 0
    expired_requests: int = 0
    last_rtt_ms: Optional[float] = None
    errors_by_kind: Dict[str, int] = field(default_factory=dict)

    @property
    def front_end_rate(self) -> float:
        return self.front_end_frames / self.uptime_s if self.uptime_s > 0 else 0.0

    @property
    def back_end_rate(self) -> float:
        return self.back_end_frames / self.uptime_s if self.uptime_s > 0 else 0.0

    @property
    def error_rate_pct(self) -> float:
        total = self.front_end_frames + self.back_end_frames
        return (self.errors / total) * 100.0 if total else 0.0

    def as_dict(self) -> dict:
        return asdict(self)

    def summary(self) -> str:
        return (
            f"uptime={self.uptime_s:.0f}s acm_frames={self.front_end_frames} "
            f"stm32_frames={self.back_end_frames} errors={self.errors} "
            f"rejected={self.rejected_commands} expired={self.expired_requests}"
        )


@dataclass(frozen=True)
class GatewayStatus:
    """
    A snapshot of the whole gateway, safe to share across threads.
    """
    state: GatewayState
    front_end: LinkState
    back_end: LinkState
    statistics: StatisticsSnapshot
    pending_requests: int = 0
