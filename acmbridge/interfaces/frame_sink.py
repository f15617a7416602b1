from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from acmbridge.protocol.core.frame import Frame


@dataclass(frozen=True, slots=True)
class FrameEvent:
    """
    Observed-traffic event handed to consumers outside the pump loops.
    Keep this small + stable; the frame itself is immutable.
    """
    frame: Frame
    kind: str                       # "decoded" | "unknown" | "rejected" | "monitor"
    msg_type: Optional[str] = None  # e.g. "M2" for STM32 frames
    forwarded: bool = False


class FrameSink(Protocol):
    def on_frame(self, event: FrameEvent) -> None: ...
    def close(self) -> None: ...
