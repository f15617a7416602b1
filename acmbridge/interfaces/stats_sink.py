# acmbridge/interfaces/stats_sink.py
from typing import Protocol
from acmbridge.runtime.state import StatisticsSnapshot


class StatisticsSink(Protocol):
    def on_statistics(self, snapshot: StatisticsSnapshot) -> None: ...
    def close(self) -> None: ...
