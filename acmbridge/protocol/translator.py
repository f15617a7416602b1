# acmbridge/protocol/translator.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .core.codec import BackEndCodec, compact_json
from .core.frame import Endpoint
from .core.messages import (
    DataMessage,
    IndexedMessage,
    Message,
    StatusMessage,
    UnknownMessage,
)
from .correlation import CorrelationTracker
from ._internal.pending_request import PendingRequest

REJECTION_TEMPLATE = "Command not recognised: {}"

# Replies synthesised locally for M4 control messages, whatever the STM32 put in them.
VERSION_REPLY: Mapping[str, Any] = {"ver": "1.0.0"}
STATUS_REPLY: Mapping[str, Any] = {"status": "ready"}


@dataclass(frozen=True)
class Translation:
    """
    Outcome of translating one ACM command.

    Exactly one of `message` (forward to the STM32) or `reply` (answer the
    ACM directly) is set.
    """

    command: str
    message: Optional[Message] = None
    reply: Optional[str] = None
    pending: Optional[PendingRequest] = None

    @property
    def forwarded(self) -> bool:
        return self.message is not None


RouteHandler = Callable[[str, str], Optional[Message]]


class CommandTranslator:
    """
    Fixed routing between the ACM command vocabulary and STM32 messages.

    ACM -> STM32:
        ver            -> M4 {action: version}
        sta            -> M4 {action: status}
        algo <args>    -> M2 {idex: <fresh>, data: {cmd: <line>}}  (tracked)
        cfg <json>     -> M1 {data: <json object>}
    anything else is answered locally with a rejection and never forwarded.
    """

    def __init__(
        self,
        tracker: Optional[CorrelationTracker] = None,
        *,
        codec: Optional[BackEndCodec] = None,
        version_reply: Mapping[str, Any] = VERSION_REPLY,
        status_reply: Mapping[str, Any] = STATUS_REPLY,
        logger: Optional[logging.Logger] = None,
    ):
        self.tracker = tracker or CorrelationTracker()
        self._codec = codec or BackEndCodec()
        self._version_reply = dict(version_reply)
        self._status_reply = dict(status_reply)
        self._log = logger or logging.getLogger(__name__)

        self._routes: Dict[str, RouteHandler] = {
            "ver": self._route_version,
            "sta": self._route_status,
            "algo": self._route_algo,
            "cfg": self._route_config,
        }

    @property
    def verbs(self) -> Tuple[str, ...]:
        return tuple(self._routes)

    # ---------------- ACM -> STM32 ----------------
    def to_back_end(self, command: str) -> Translation:
        text = command.strip()
        parts = text.split(None, 1)
        verb = parts[0] if parts else ""
        args = parts[1] if len(parts) > 1 else ""

        handler = self._routes.get(verb)
        message = handler(text, args) if handler is not None else None
        if message is None:
            self._log.info("COMMAND_REJECTED command=%r", text)
            return Translation(command=text, reply=REJECTION_TEMPLATE.format(text))

        pending = None
        if isinstance(message, IndexedMessage):
            pending = self.tracker.register(message.idex, Endpoint.BACK_END, command=text)

        self._log.debug("COMMAND_ROUTED verb=%s msg_type=%s", verb, message.msg_type.value)
        return Translation(command=text, message=message, pending=pending)

    def _route_version(self, text: str, args: str) -> Optional[Message]:
        return None if args else StatusMessage(action="version")

    def _route_status(self, text: str, args: str) -> Optional[Message]:
        return None if args else StatusMessage(action="status")

    def _route_algo(self, text: str, args: str) -> Optional[Message]:
        if not args:
            return None
        return IndexedMessage(idex=self.tracker.next_idex(), data={"cmd": text})

    def _route_config(self, text: str, args: str) -> Optional[Message]:
        try:
            data = json.loads(args)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None
        return DataMessage(data=data)

    # ---------------- STM32 -> ACM ----------------
    def to_front_end(self, message: Message, raw: Optional[bytes] = None) -> Optional[str]:
        """Reply text for the ACM (without prompt), or None when nothing is sent."""
        if isinstance(message, UnknownMessage):
            self._log.warning("UNTRANSLATED_MESSAGE reason=%s raw=%r", message.reason, message.raw[:120])
            return None

        if isinstance(message, IndexedMessage) and message.idex is not None:
            self.tracker.resolve(message.idex, message)

        if isinstance(message, (DataMessage, IndexedMessage)):
            # M1/M2 only ever relay their data object
            if message.data is None:
                self._log.debug("NO_REPLY msg_type=%s reason=no data", message.msg_type.value)
                return None
            return compact_json(message.data)

        if isinstance(message, StatusMessage):
            if message.action == "version":
                return compact_json(self._version_reply)
            if message.action == "status":
                return compact_json(self._status_reply)

        return self._raw_text(message, raw)

    def _raw_text(self, message: Message, raw: Optional[bytes]) -> str:
        if raw is not None:
            return bytes(raw).decode("utf-8", errors="replace")
        return self._codec.dumps(message)
