from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any, Dict, Optional

from acmbridge.protocol.errors import DecodeError, ProtocolError
from .frame import Frame
from .messages import MESSAGE_TYPES, Message, MsgType, UnknownMessage

BACK_END_TERMINATOR = b"\r\n"
FRONT_END_TERMINATOR = b"\n"
FRONT_END_PROMPT = b">"

# Optional fields that must be JSON integers when present (bool is rejected even though it is an int subclass).
_INT_FIELDS = ("idex", "toptype")

# Whitespace, control and non-ASCII bytes skipped before the JSON text.
_LINE_NOISE = bytes(range(0x00, 0x21)) + bytes(range(0x7F, 0x100))


def _wire_key(f: dataclasses.Field) -> str:
    return f.metadata.get("wire", f.name)


def compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class BackEndCodec:
    """
    JSON-per-line codec for the STM32 side.

    decode() never raises: anything that is not a recognised message comes
    back as an UnknownMessage carrying the raw payload and the reason.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    # ---------------- Decode ----------------
    def decode(self, frame: Frame) -> Message:
        try:
            return self.loads(frame.payload)
        except DecodeError as e:
            self._log.debug("DECODE_FAILED reason=%s payload=%r", e.reason, frame.payload[:120])
            return UnknownMessage(raw=bytes(frame.payload), reason=e.reason, fields=e.fields)

    def loads(self, payload: bytes) -> Message:
        # The peer occasionally emits stray control bytes after a reset.
        body = bytes(payload).lstrip(_LINE_NOISE)
        if not body:
            raise DecodeError("no JSON object in payload")

        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid UTF-8: {e}") from None

        try:
            obj = json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"invalid JSON: {e.msg}") from None

        if not isinstance(obj, dict):
            raise DecodeError(f"expected JSON object, got {type(obj).__name__}")

        return self.from_dict(obj)

    def from_dict(self, obj: Dict[str, Any]) -> Message:
        tag = obj.get("MsgType")
        if tag is None:
            raise DecodeError("missing MsgType", fields=obj)
        try:
            msg_type = MsgType(tag)
        except ValueError:
            raise DecodeError(f"unrecognized MsgType {tag!r}", fields=obj) from None

        cls = MESSAGE_TYPES[msg_type]
        kwargs: Dict[str, Any] = {}
        consumed = {"MsgType"}

        for f in dataclasses.fields(cls):
            if f.name == "extra":
                continue
            key = _wire_key(f)
            if key in obj:
                kwargs[f.name] = obj[key]
                consumed.add(key)

        for name in _INT_FIELDS:
            value = kwargs.get(name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise DecodeError(
                    f"{msg_type.value} '{name}' must be an integer, got {value!r}",
                    fields=obj,
                )

        kwargs["extra"] = {k: v for k, v in obj.items() if k not in consumed}
        return cls(**kwargs)

    # ---------------- Encode ----------------
    def to_dict(self, message: Message) -> Dict[str, Any]:
        if isinstance(message, UnknownMessage) or message.msg_type is None:
            raise ProtocolError("UnknownMessage cannot be encoded")

        out: Dict[str, Any] = {"MsgType": message.msg_type.value}
        for f in dataclasses.fields(message):
            if f.name == "extra":
                continue
            value = getattr(message, f.name)
            if value is None:
                continue
            out[_wire_key(f)] = value

        extra = getattr(message, "extra", None) or {}
        for key in sorted(extra):
            if key not in out:
                out[key] = extra[key]
        return out

    def dumps(self, message: Message) -> str:
        try:
            return compact_json(self.to_dict(message))
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"cannot serialize {type(message).__name__}: {e}") from None

    def encode(self, message: Message) -> bytes:
        return self.dumps(message).encode("utf-8") + BACK_END_TERMINATOR


class FrontEndCodec:
    """Plain text lines for the ACM side; replies end with the "\\n>" prompt."""

    def decode(self, frame: Frame) -> str:
        return frame.payload.decode("utf-8", errors="replace")

    def encode(self, text: str) -> bytes:
        return text.encode("utf-8") + FRONT_END_TERMINATOR + FRONT_END_PROMPT
