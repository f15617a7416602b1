from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class Endpoint(str, Enum):
    """The two serial peers bridged by the gateway."""

    FRONT_END = "acm"
    BACK_END = "stm32"

    @property
    def peer(self) -> "Endpoint":
        return Endpoint.BACK_END if self is Endpoint.FRONT_END else Endpoint.FRONT_END


@dataclass(frozen=True)
class Frame:
    """
    One delimited unit cut out of an endpoint's byte stream.

    `payload` excludes the delimiter; `delimiter` records which terminator
    closed the frame (relevant when an assembler scans for several).
    """

    endpoint: Endpoint
    payload: bytes
    captured_at: float = field(default_factory=time.time)
    delimiter: bytes = b""

    def __len__(self) -> int:
        return len(self.payload)

    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")
