# acmbridge/transport/errors.py
from __future__ import annotations

class TransportError(Exception):
    """Base class for serial transport failures."""

class TransportOpenError(TransportError):
    """Port could not be opened or configured."""

class TransportIOError(TransportError):
    """Read/write failed on an open (or previously open) port."""

class TransportTimeoutError(TransportIOError):
    """Write (or read) did not complete within the port timeout; the port stays usable."""
