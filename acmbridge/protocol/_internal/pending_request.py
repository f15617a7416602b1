from __future__ import annotations

import time
from concurrent.futures import Future
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from acmbridge.protocol.core.frame import Endpoint
    from acmbridge.protocol.core.messages import Message


class PendingRequest:
    """An M2 request sent to the back end, waiting for the reply with the same idex."""

    def __init__(
        self,
        idex: int,
        endpoint: "Endpoint",
        timeout_s: float,
        *,
        command: str = "",
        sent_at: Optional[float] = None,
    ):
        self.idex = int(idex)
        self.endpoint = endpoint
        self.command = str(command)
        self.timeout_s = float(timeout_s)
        self.sent_at = time.monotonic() if sent_at is None else float(sent_at)
        self.future: Future = Future()

    def add_done_callback(self, cb: Callable[[Future], Any]) -> Any:
        """Forward callback registration to the underlying Future."""
        return self.future.add_done_callback(cb)

    def done(self) -> bool:
        return self.future.done()

    def is_expired(self, now: float) -> bool:
        return (now - self.sent_at) > self.timeout_s

    def elapsed_ms(self, now: float) -> float:
        return max(0.0, (now - self.sent_at) * 1000.0)

    def set_result(
        self,
        response: Optional["Message"],
        status: str,
        *,
        now: Optional[float] = None,
    ) -> None:
        """Complete the request; later calls are ignored."""
        if self.future.done():
            return

        now = time.monotonic() if now is None else now

        if status == "timeout":
            self.future.set_result(
                {"status": "timeout", "idex": self.idex, "elapsed_ms": self.elapsed_ms(now)}
            )
            return

        if status == "send_failed":
            self.future.set_result({"status": "send_failed", "idex": self.idex})
            return

        if response is None:
            self.future.set_result({"status": "unknown", "idex": self.idex})
            return

        self.future.set_result(
            {
                "status": status,
                "idex": self.idex,
                "response": response,
                "rtt_ms": self.elapsed_ms(now),
            }
        )

    def wait(self, timeout: Optional[float] = None) -> dict:
        """Blocking wait for the response (or expiry)."""
        try:
            return self.future.result(timeout=timeout)
        except Exception:
            return {"status": "pending", "idex": self.idex}

    def __repr__(self) -> str:
        return f"PendingRequest(idex={self.idex}, endpoint={self.endpoint.value!r}, command={self.command!r})"
