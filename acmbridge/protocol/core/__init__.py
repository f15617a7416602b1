# protocol/core/__init__.py

from .frame import Endpoint, Frame
from .assembler import FrameAssembler
from .messages import (
    MsgType,
    Message,
    DataMessage,
    IndexedMessage,
    ProvisioningMessage,
    StatusMessage,
    UpdateMessage,
    PassthroughMessage,
    UnknownMessage,
)
from .codec import BackEndCodec, FrontEndCodec

__all__ = [
    "Endpoint", "Frame", "FrameAssembler",
    "MsgType", "Message", "DataMessage", "IndexedMessage", "ProvisioningMessage",
    "StatusMessage", "UpdateMessage", "PassthroughMessage", "UnknownMessage",
    "BackEndCodec", "FrontEndCodec",
]
