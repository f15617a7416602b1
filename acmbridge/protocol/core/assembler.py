from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from .frame import Endpoint, Frame

FRONT_END_DELIMITERS: Tuple[bytes, ...] = (b"\n",)
BACK_END_DELIMITERS: Tuple[bytes, ...] = (b"\r\n",)
# Replies read back by diagnostic tooling: JSON lines or ACM prompts.
REPLY_DELIMITERS: Tuple[bytes, ...] = (b"\r\n", b"\n>")

DEFAULT_CAPACITY = 10 * 1024
DEFAULT_SLACK = 100


def default_delimiters(endpoint: Endpoint) -> Tuple[bytes, ...]:
    return FRONT_END_DELIMITERS if endpoint is Endpoint.FRONT_END else BACK_END_DELIMITERS


class FrameAssembler:
    """
    Accumulates raw bytes for one endpoint and cuts them into frames.

    Several delimiters may be configured; each scan picks the match with the
    smallest offset (the longer delimiter on a tie), so a line closed by
    "\\r\\n" is never also claimed by "\\n>".

    When the buffered remainder grows beyond `capacity - slack` without any
    delimiter, the whole buffer is dropped and counted as an overflow.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        delimiters: Optional[Sequence[bytes]] = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        slack: int = DEFAULT_SLACK,
        on_overflow: Optional[Callable[[int], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        delims = tuple(bytes(d) for d in (delimiters or default_delimiters(endpoint)))
        if not delims or any(len(d) == 0 for d in delims):
            raise ValueError("at least one non-empty delimiter is required")
        if slack < 0 or capacity <= slack:
            raise ValueError(f"invalid capacity/slack: capacity={capacity} slack={slack}")

        self.endpoint = endpoint
        self.delimiters = delims
        self.capacity = int(capacity)
        self.slack = int(slack)
        self.on_overflow = on_overflow

        self.buffer = bytearray()
        self.overflow_count = 0
        self._log = logger or logging.getLogger(__name__)

    # ---------------- Public API ----------------
    @property
    def limit(self) -> int:
        return self.capacity - self.slack

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet closed by a delimiter."""
        return bytes(self.buffer)

    def feed(self, data: bytes) -> List[Frame]:
        """Append raw bytes and return every frame completed by them."""
        if data:
            self.buffer.extend(data)

        frames: List[Frame] = []
        now = time.time()
        while True:
            hit = self._find_delimiter()
            if hit is None:
                break
            idx, delim = hit
            payload = bytes(self.buffer[:idx])
            del self.buffer[: idx + len(delim)]
            frames.append(Frame(self.endpoint, payload, captured_at=now, delimiter=delim))

        if len(self.buffer) > self.limit:
            self._overflow()

        if frames:
            self._log.debug(
                "ASSEMBLER_FRAMES endpoint=%s count=%d buffered=%d",
                self.endpoint.value,
                len(frames),
                len(self.buffer),
            )
        return frames

    def reset(self) -> None:
        self.buffer.clear()

    # ---------------- Helpers ----------------
    def _find_delimiter(self) -> Optional[Tuple[int, bytes]]:
        best: Optional[Tuple[int, bytes]] = None
        for delim in self.delimiters:
            idx = self.buffer.find(delim)
            if idx < 0:
                continue
            if best is None or idx < best[0] or (idx == best[0] and len(delim) > len(best[1])):
                best = (idx, delim)
        return best

    def _overflow(self) -> None:
        dropped = len(self.buffer)
        head = bytes(self.buffer[:100])
        self.buffer.clear()
        self.overflow_count += 1
        self._log.warning(
            "FRAME_OVERFLOW endpoint=%s dropped=%d limit=%d head=%r",
            self.endpoint.value,
            dropped,
            self.limit,
            head,
        )
        if self.on_overflow is not None:
            self.on_overflow(dropped)
