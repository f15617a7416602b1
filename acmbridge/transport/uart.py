# acmbridge/transport/uart.py
from __future__ import annotations

from typing import Optional

import serial
from serial import SerialException, SerialTimeoutException

from .base import Transport
from .errors import TransportIOError, TransportOpenError, TransportTimeoutError


# Both peers' firmware is built for 8N2; changing the stop bits breaks framing on the wire.
DEFAULT_BAUDRATE = 115200
DEFAULT_BYTESIZE = serial.EIGHTBITS
DEFAULT_PARITY = serial.PARITY_NONE
DEFAULT_STOPBITS = serial.STOPBITS_TWO


class UARTTransport(Transport):
    """
    UART transport implemented via pyserial.

    read(n) blocks up to `timeout` for the first byte, then drains whatever the
    driver already buffered (never more than n). An idle link returns b"".
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        *,
        bytesize: int = DEFAULT_BYTESIZE,
        parity: str = DEFAULT_PARITY,
        stopbits: float = DEFAULT_STOPBITS,
        timeout: float = 0.1,
    ):
        self.port = port
        self.name = port
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None

    def open(self) -> None:
        try:
            self.ser = serial.Serial(
                self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            self.ser.reset_input_buffer()
            self.ser.reset_output_buffer()
        except (SerialException, ValueError) as e:
            self.ser = None
            raise TransportOpenError(f"cannot open {self.port}: {e}") from None

    def close(self) -> None:
        if self.ser is not None:
            try:
                self.ser.close()
            finally:
                self.ser = None

    def _drop(self) -> None:
        # release the handle of a failed port; the caller reports the original error
        ser, self.ser = self.ser, None
        if ser is not None:
            try:
                ser.close()
            except (SerialException, OSError):
                pass

    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def read(self, n: int) -> bytes:
        if self.ser is None:
            raise TransportIOError(f"read on {self.port} while transport not open")

        try:
            first = self.ser.read(1)
            if not first:
                # timeout reached with nothing on the line
                return b""
            waiting = min(self.ser.in_waiting, n - 1)
            if waiting <= 0:
                return first
            return first + self.ser.read(waiting)
        except SerialException as e:
            self._drop()
            raise TransportIOError(f"UART read failed on {self.port}: {e}") from None

    def write(self, data: bytes) -> int:
        if self.ser is None:
            raise TransportIOError(f"write on {self.port} while transport not open")

        try:
            return self.ser.write(data)
        except SerialTimeoutException as e:
            raise TransportTimeoutError(f"UART write timed out on {self.port}: {e}") from None
        except SerialException as e:
            self._drop()
            raise TransportIOError(f"UART write failed on {self.port}: {e}") from None

    def flush(self) -> None:
        if self.ser is None:
            raise TransportIOError(f"flush on {self.port} while transport not open")

        try:
            self.ser.flush()
        except SerialException as e:
            self._drop()
            raise TransportIOError(f"UART flush failed on {self.port}: {e}") from None
