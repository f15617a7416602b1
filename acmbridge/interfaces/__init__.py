from .frame_sink import FrameEvent, FrameSink
from .stats_sink import StatisticsSink

__all__ = ["FrameEvent", "FrameSink", "StatisticsSink"]
