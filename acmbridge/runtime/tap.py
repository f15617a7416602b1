# acmbridge/runtime/tap.py
from __future__ import annotations

import logging
import queue
from typing import List, Optional

from acmbridge.interfaces.frame_sink import FrameEvent, FrameSink


class FrameTap:
    """
    Hands observed frames from the pump threads to outside consumers.

    Events go into a bounded queue that consumers poll, and to every
    registered FrameSink. A full queue drops the event with a warning; the
    pumps never block on it.
    """

    def __init__(self, maxsize: int = 200, *, logger: Optional[logging.Logger] = None):
        self._queue: "queue.Queue[FrameEvent]" = queue.Queue(maxsize=maxsize)
        self._sinks: List[FrameSink] = []
        self._log = logger or logging.getLogger(__name__)
        self.dropped = 0

    def add_sink(self, sink: FrameSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: FrameSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def publish(self, event: FrameEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            self._log.debug("FRAME_TAP_FULL endpoint=%s dropped=%d", event.frame.endpoint.value, self.dropped)

        for sink in list(self._sinks):
            try:
                sink.on_frame(event)
            except Exception:
                self._log.exception("FRAME_SINK_ERROR sink=%s", type(sink).__name__)

    def get(self, timeout: float = 0.1) -> Optional[FrameEvent]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        for sink in list(self._sinks):
            try:
                sink.close()
            except Exception:
                self._log.exception("FRAME_SINK_CLOSE_ERROR")
        self._sinks.clear()
