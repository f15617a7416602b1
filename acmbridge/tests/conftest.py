from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Optional

import pytest

from acmbridge.transport.base import Transport
from acmbridge.transport.errors import TransportIOError


class FakeTransport(Transport):
    """In-memory serial port; feed() queues bytes for read(), writes are recorded."""

    def __init__(self, name: str = "fake", *, read_delay_s: float = 0.002):
        self.name = name
        self.read_delay_s = read_delay_s
        self.opened = False
        self.open_calls = 0
        self.close_calls = 0

        self.fail_open: Optional[Exception] = None
        self.raise_on_read: Optional[Exception] = None
        self.raise_on_write: Optional[Exception] = None

        self._rx: deque = deque()
        self._tx = bytearray()
        self._lock = threading.Lock()

    def feed(self, data: bytes) -> None:
        with self._lock:
            self._rx.append(bytes(data))

    @property
    def written(self) -> bytes:
        with self._lock:
            return bytes(self._tx)

    def open(self) -> None:
        self.open_calls += 1
        if self.fail_open is not None:
            raise self.fail_open
        self.opened = True

    def close(self) -> None:
        self.close_calls += 1
        self.opened = False

    def is_open(self) -> bool:
        return self.opened

    def read(self, n: int) -> bytes:
        if not self.opened:
            raise TransportIOError(f"{self.name} not open")
        if self.raise_on_read is not None:
            err, self.raise_on_read = self.raise_on_read, None
            self.opened = False
            raise err
        with self._lock:
            if self._rx:
                chunk = self._rx.popleft()
                if len(chunk) > n:
                    self._rx.appendleft(chunk[n:])
                    chunk = chunk[:n]
                return chunk
        time.sleep(self.read_delay_s)
        return b""

    def write(self, data: bytes) -> int:
        if not self.opened:
            raise TransportIOError(f"{self.name} not open")
        if self.raise_on_write is not None:
            raise self.raise_on_write
        with self._lock:
            self._tx.extend(data)
        return len(data)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def acm():
    return FakeTransport("acm-fake")


@pytest.fixture
def stm32():
    return FakeTransport("stm32-fake")


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def waiter():
    return wait_until
