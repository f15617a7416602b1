from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Type


class MsgType(str, Enum):
    """`MsgType` discriminator of the STM32 JSON-line protocol."""

    M1 = "M1"  # data / config
    M2 = "M2"  # indexed request / acknowledgement
    M3 = "M3"  # network provisioning
    M4 = "M4"  # status / version
    M5 = "M5"  # firmware update
    M6 = "M6"  # passthrough (MQTT topic bridge)


def wire(name: str) -> Dict[str, str]:
    """Field metadata naming the JSON key when it differs from the attribute."""
    return {"wire": name}


@dataclass(frozen=True)
class Message:
    """Base of all decoded back-end messages."""

    MSG_TYPE: ClassVar[Optional[MsgType]] = None

    @property
    def msg_type(self) -> Optional[MsgType]:
        return self.MSG_TYPE


@dataclass(frozen=True)
class DataMessage(Message):
    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M1

    data: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IndexedMessage(Message):
    """
    M2: carries `idex`, the correlation id of a request/ack pair. The peer
    omits `idex` when it is 0, so a missing key decodes to None.
    """

    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M2

    idex: Optional[int] = None
    data: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProvisioningMessage(Message):
    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M3

    wifiname: Optional[str] = None
    wifipass: Optional[str] = None
    path: Optional[str] = None
    state: Optional[int] = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StatusMessage(Message):
    """
    M4 comes in three shapes:
      - version query:  cVer / lVer / devType / uid
      - control:        action = "wait" | "version" | "status"
      - readiness:      ready = "ok"
    """

    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M4

    c_ver: Optional[str] = field(default=None, metadata=wire("cVer"))
    l_ver: Optional[str] = field(default=None, metadata=wire("lVer"))
    dev_type: Optional[str] = field(default=None, metadata=wire("devType"))
    uid: Optional[str] = None
    action: Optional[str] = None
    ready: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_query(self) -> bool:
        return self.c_ver is not None


@dataclass(frozen=True)
class UpdateMessage(Message):
    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M5

    upver: Optional[str] = None
    upstate: Optional[int] = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PassthroughMessage(Message):
    MSG_TYPE: ClassVar[Optional[MsgType]] = MsgType.M6

    # some firmware puts toptype inside data only
    toptype: Optional[int] = None
    data: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UnknownMessage(Message):
    """
    Anything that could not be mapped to a known tag. Kept for logging only.
    """

    raw: bytes = b""
    reason: str = ""
    fields: Optional[Mapping[str, Any]] = None


MESSAGE_TYPES: Dict[MsgType, Type[Message]] = {
    MsgType.M1: DataMessage,
    MsgType.M2: IndexedMessage,
    MsgType.M3: ProvisioningMessage,
    MsgType.M4: StatusMessage,
    MsgType.M5: UpdateMessage,
    MsgType.M6: PassthroughMessage,
}
