# acmbridge/protocol/errors.py
from __future__ import annotations


class ProtocolError(Exception):
    """Base for protocol-level failures (framing/codec/translation)."""

class DecodeError(ProtocolError):
    """Payload is not a well-formed message of the expected protocol."""

    def __init__(self, reason: str, fields: dict | None = None):
        super().__init__(reason)
        self.reason = reason
        self.fields = fields
