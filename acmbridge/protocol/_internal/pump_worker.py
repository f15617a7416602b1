# acmbridge/protocol/_internal/pump_worker.py
from __future__ import annotations

import threading
from typing import Optional, Protocol


class Pump(Protocol):
    """One direction of the gateway; pump_once() must return within the read timeout."""

    def pump_once(self) -> Optional[float]: ...
    def on_unexpected_error(self) -> None: ...


class PumpWorker(threading.Thread):
    """
    Thread that keeps calling pump.pump_once() until stopped.

    pump_once() may return a back-off delay (seconds); the wait is cut short by stop().
    The stop flag is only checked between iterations, so a frame already read is
    always processed to the end.
    """

    ERROR_BACKOFF_S = 0.01

    def __init__(self, pump: Pump, *, name: str = "pump"):
        super().__init__(name=name, daemon=True)
        self.pump = pump
        self._stop_event = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                delay = self.pump.pump_once()
            except Exception:
                self.pump.on_unexpected_error()
                self._stop_event.wait(self.ERROR_BACKOFF_S)
            else:
                if delay:
                    self._stop_event.wait(delay)

    def stop(self) -> None:
        self._stop_event.set()
