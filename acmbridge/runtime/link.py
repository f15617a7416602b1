# acmbridge/runtime/link.py
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from acmbridge.protocol.core.assembler import FrameAssembler
from acmbridge.protocol.core.frame import Endpoint, Frame
from acmbridge.runtime.state import LinkState
from acmbridge.transport.base import Transport
from acmbridge.transport.errors import TransportError, TransportOpenError

from acmbridge.core.errors import DeviceConnectError


@dataclass
class SerialLink:
    """
    One endpoint of the gateway: transport + frame assembler + write lock.

    Responsibilities:
      - open/close the underlying transport (startup failures become DeviceConnectError)
      - read and cut incoming bytes into frames (assembler owned by the reading pump)
      - serialize writers; a serial port is not safe for concurrent writes
      - rate-limited reopen after the port dropped
    """

    endpoint: Endpoint
    transport: Transport
    assembler: FrameAssembler
    read_size: int = 1024
    reconnect_interval_s: float = 1.0
    logger: Optional[logging.Logger] = None

    def __post_init__(self) -> None:
        self._log = self.logger or logging.getLogger(__name__)
        self._write_lock = threading.Lock()
        self._last_reopen: Optional[float] = None
        self.last_error: Optional[str] = None

    @property
    def name(self) -> str:
        return getattr(self.transport, "name", type(self.transport).__name__)

    @property
    def connected(self) -> bool:
        return self.transport.is_open()

    def open(self) -> None:
        try:
            self.transport.open()
            self.last_error = None
        except TransportOpenError as e:
            self.last_error = str(e)
            self._log.error("TRANSPORT_OPEN_FAILED endpoint=%s port=%s err=%s", self.endpoint.value, self.name, e)
            raise DeviceConnectError(
                f"Could not open {self.endpoint.value} port {self.name}.",
                hint=str(e),
                details={"endpoint": self.endpoint.value, "port": self.name},
            ) from None
        except TransportError as e:
            self.last_error = str(e)
            self._log.error("TRANSPORT_OPEN_ERROR endpoint=%s port=%s err=%s", self.endpoint.value, self.name, e)
            raise DeviceConnectError(
                f"Transport error while opening {self.endpoint.value} port {self.name}.",
                hint=str(e),
                details={"endpoint": self.endpoint.value, "port": self.name},
            ) from None
        self._log.info("LINK_OPEN endpoint=%s port=%s", self.endpoint.value, self.name)

    def close(self) -> None:
        try:
            self.transport.close()
        except Exception:
            self._log.exception("Failed to close %s transport", self.endpoint.value)

    def read_frames(self) -> List[Frame]:
        """One bounded read; transport errors propagate to the pump."""
        data = self.transport.read(self.read_size)
        if not data:
            return []
        return self.assembler.feed(data)

    def write(self, data: bytes) -> int:
        with self._write_lock:
            return self.transport.write(data)

    def try_reopen(self, now: Optional[float] = None) -> bool:
        """Attempt to reopen a dropped port at most once per reconnect interval."""
        if self.connected:
            return True

        now = time.monotonic() if now is None else now
        if self._last_reopen is not None and (now - self._last_reopen) < self.reconnect_interval_s:
            return False
        self._last_reopen = now

        try:
            self.transport.open()
        except TransportError as e:
            self.last_error = str(e)
            self._log.debug("LINK_REOPEN_FAILED endpoint=%s err=%s", self.endpoint.value, e)
            return False

        # bytes buffered before the drop belong to a frame that will never complete
        self.assembler.reset()
        self.last_error = None
        self._log.info("LINK_REOPENED endpoint=%s port=%s", self.endpoint.value, self.name)
        return True

    def state(self) -> LinkState:
        return LinkState(
            endpoint=self.endpoint.value,
            port=self.name,
            connected=self.connected,
            last_error=self.last_error,
        )
