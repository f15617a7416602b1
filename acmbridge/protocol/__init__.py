# protocol/__init__.py

# Core classes
from .core import Endpoint, Frame, FrameAssembler, BackEndCodec, FrontEndCodec
from .errors import ProtocolError, DecodeError
from .correlation import CorrelationTracker
from .translator import CommandTranslator, Translation

__all__ = [
    "Endpoint", "Frame", "FrameAssembler", "BackEndCodec", "FrontEndCodec",
    "ProtocolError", "DecodeError",
    "CorrelationTracker", "CommandTranslator", "Translation",
]
