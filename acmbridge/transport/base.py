from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract byte transport for one gateway endpoint (ACM or STM32 side).

    Contract:
      - open()/close() manage the underlying port; close() is idempotent.
      - read(n) waits at most the configured read timeout and returns 0..n bytes.
        b"" means the link was idle for the whole timeout.
      - write(data) returns the number of bytes written.
      - is_open() reports whether read/write can currently be attempted.
    """

    #: Human-readable identity used in logs (port path, fake name, ...)
    name: str = "?"

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    def flush(self) -> None:
        return None

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
