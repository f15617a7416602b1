# acmbridge/runtime/reporter.py
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from acmbridge.interfaces.stats_sink import StatisticsSink
from acmbridge.runtime.state import StatisticsSnapshot
from acmbridge.runtime.stats import GatewayStatistics


class StatisticsReporter:
    """
    Pushes a statistics snapshot to every sink on a fixed interval.
    """

    def __init__(
        self,
        stats: GatewayStatistics,
        *,
        interval_s: float = 10.0,
        sinks: Optional[List[StatisticsSink]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._stats = stats
        self._interval_s = float(interval_s)
        self._sinks: List[StatisticsSink] = list(sinks or [])
        self._log = logger or logging.getLogger(__name__)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ---------------- Public API ----------------
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_sink(self, sink: StatisticsSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: StatisticsSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def start(self) -> None:
        if self.running:
            return
        if self._interval_s <= 0:
            self._log.info("STATS_REPORTER_DISABLED")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker, name="stats-reporter", daemon=True)
        self._thread.start()

    def stop(self, *, final_report: bool = True) -> Optional[StatisticsSnapshot]:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        return self.report_now() if final_report else None

    def report_now(self) -> StatisticsSnapshot:
        snap = self._stats.snapshot()
        for sink in list(self._sinks):
            try:
                sink.on_statistics(snap)
            except Exception:
                self._log.exception("STATS_SINK_ERROR sink=%s", type(sink).__name__)
        return snap

    def close(self) -> None:
        for sink in list(self._sinks):
            try:
                sink.close()
            except Exception:
                self._log.exception("STATS_SINK_CLOSE_ERROR")
        self._sinks.clear()

    # ---------------- Internal ----------------
    def _worker(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            self.report_now()
