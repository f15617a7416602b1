# acmbridge/app/sinks.py
from __future__ import annotations

import logging
from typing import Optional

from acmbridge.interfaces.stats_sink import StatisticsSink
from acmbridge.runtime.state import StatisticsSnapshot


class LoggingStatsSink(StatisticsSink):
    """
    Writes each statistics snapshot as one log line:

    STATS uptime=30s acm_frames=12 stm32_frames=40 acm_rate=0.40/s
          stm32_rate=1.33/s errors=1 error_rate=1.92% ...
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._log = logger or logging.getLogger(__name__)
        self._level = level

    def on_statistics(self, snapshot: StatisticsSnapshot) -> None:
        self._log.log(
            self._level,
            "STATS %s acm_rate=%.2f/s stm32_rate=%.2f/s error_rate=%.2f%%",
            snapshot.summary(),
            snapshot.front_end_rate,
            snapshot.back_end_rate,
            snapshot.error_rate_pct,
        )

    def close(self) -> None:
        return None
