# acmbridge/runtime/gateway.py
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

from acmbridge.app.config import GatewayConfig
from acmbridge.core.errors import BridgeError, GatewayStateError
from acmbridge.interfaces.frame_sink import FrameSink
from acmbridge.interfaces.stats_sink import StatisticsSink
from acmbridge.protocol._internal.pump_worker import PumpWorker
from acmbridge.protocol.core.assembler import FrameAssembler
from acmbridge.protocol.core.codec import BackEndCodec, FrontEndCodec
from acmbridge.protocol.core.frame import Endpoint
from acmbridge.protocol.core.messages import Message
from acmbridge.protocol.correlation import CorrelationTracker
from acmbridge.protocol.translator import CommandTranslator, Translation
from acmbridge.runtime import stats as stat_kinds
from acmbridge.runtime.link import SerialLink
from acmbridge.runtime.pumps import BackEndPump, FrontEndPump
from acmbridge.runtime.reporter import StatisticsReporter
from acmbridge.runtime.state import GatewayState, GatewayStatus, StatisticsSnapshot
from acmbridge.runtime.stats import GatewayStatistics
from acmbridge.runtime.tap import FrameTap
from acmbridge.transport.base import Transport
from acmbridge.transport.errors import TransportError


class Gateway:
    """
    Bidirectional ACM <-> STM32 gateway.

    Owns both serial links, one pump thread per direction, the shared
    statistics and correlation tracker, and the statistics reporter.

    Lifecycle: STOPPED -> STARTING -> RUNNING -> STOPPING -> STOPPED.
    A port that fails to open at start() is fatal (DeviceConnectError);
    everything after that is recovered inside the pumps.
    """

    def __init__(
        self,
        front_end: Transport,
        back_end: Transport,
        *,
        config: Optional[GatewayConfig] = None,
        stats_sinks: Optional[Sequence[StatisticsSink]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or GatewayConfig()
        self._log = logger or logging.getLogger(__name__)

        self._stats = GatewayStatistics()
        self._tracker = CorrelationTracker(
            self._config.correlation_timeout_s,
            listener=self._stats,
            logger=self._log,
        )
        self._translator = CommandTranslator(self._tracker, logger=self._log)
        self._tap = FrameTap(self._config.frame_tap_size, logger=self._log)
        self._reporter = StatisticsReporter(
            self._stats,
            interval_s=self._config.stats_interval_s,
            sinks=list(stats_sinks or []),
            logger=self._log,
        )

        self._front_codec = FrontEndCodec()
        self._back_codec = BackEndCodec(logger=self._log)

        self._front = self._make_link(Endpoint.FRONT_END, front_end)
        self._back = self._make_link(Endpoint.BACK_END, back_end)

        self._state = GatewayState.STOPPED
        self._state_lock = threading.Lock()
        self._workers: List[PumpWorker] = []

    def _make_link(self, endpoint: Endpoint, transport: Transport) -> SerialLink:
        link_cfg = self._config.front_end if endpoint is Endpoint.FRONT_END else self._config.back_end
        framing = self._config.framing

        def _on_overflow(_dropped: int) -> None:
            self._stats.record_error(stat_kinds.OVERFLOW)

        assembler = FrameAssembler(
            endpoint,
            link_cfg.delimiters or None,
            capacity=framing.capacity,
            slack=framing.slack,
            on_overflow=_on_overflow,
            logger=self._log,
        )
        return SerialLink(
            endpoint=endpoint,
            transport=transport,
            assembler=assembler,
            read_size=framing.read_size,
            reconnect_interval_s=self._config.reconnect_interval_s,
            logger=self._log,
        )

    # ---------------- Accessors ----------------
    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def state(self) -> GatewayState:
        with self._state_lock:
            return self._state

    @property
    def tracker(self) -> CorrelationTracker:
        return self._tracker

    @property
    def tap(self) -> FrameTap:
        return self._tap

    def link(self, endpoint: Endpoint) -> SerialLink:
        return self._front if endpoint is Endpoint.FRONT_END else self._back

    def statistics(self) -> StatisticsSnapshot:
        return self._stats.snapshot()

    def status(self) -> GatewayStatus:
        return GatewayStatus(
            state=self.state,
            front_end=self._front.state(),
            back_end=self._back.state(),
            statistics=self._stats.snapshot(),
            pending_requests=self._tracker.pending_count,
        )

    def add_frame_sink(self, sink: FrameSink) -> None:
        self._tap.add_sink(sink)

    def add_stats_sink(self, sink: StatisticsSink) -> None:
        self._reporter.add_sink(sink)

    # ---------------- Lifecycle ----------------
    def start(self) -> None:
        with self._state_lock:
            if self._state is GatewayState.RUNNING:
                return
            if self._state is not GatewayState.STOPPED:
                raise GatewayStateError(f"Cannot start gateway while {self._state.value}.")
            self._state = GatewayState.STARTING

        self._log.info(
            "GATEWAY_STARTING acm=%s stm32=%s forward=%s",
            self._front.name,
            self._back.name,
            self._config.forward,
        )

        try:
            self._front.open()
            try:
                self._back.open()
            except BridgeError:
                self._front.close()
                raise
        except BridgeError:
            with self._state_lock:
                self._state = GatewayState.STOPPED
            raise

        common = dict(
            translator=self._translator,
            stats=self._stats,
            tap=self._tap,
            forward=self._config.forward,
            logger=self._log,
        )
        front_pump = FrontEndPump(self._front, self._back, **common)
        back_pump = BackEndPump(self._back, self._front, **common)

        self._workers = [
            PumpWorker(front_pump, name="pump-acm-to-stm32"),
            PumpWorker(back_pump, name="pump-stm32-to-acm"),
        ]
        for worker in self._workers:
            worker.start()
            self._log.info("PUMP_STARTED name=%s", worker.name)
        self._reporter.start()

        with self._state_lock:
            self._state = GatewayState.RUNNING
        self._log.info("GATEWAY_RUNNING")

    def stop(self) -> Optional[StatisticsSnapshot]:
        """Stop both pumps, close the ports and return the final statistics."""
        with self._state_lock:
            if self._state in (GatewayState.STOPPED, GatewayState.STOPPING):
                return None
            self._state = GatewayState.STOPPING

        self._log.info("GATEWAY_STOPPING")
        for worker in self._workers:
            worker.stop()
        for worker in self._workers:
            worker.join()
        self._workers = []

        final = None
        try:
            final = self._reporter.stop(final_report=True)
        except Exception:
            self._log.exception("STATS_REPORTER_STOP_ERROR")

        self._front.close()
        self._back.close()

        with self._state_lock:
            self._state = GatewayState.STOPPED
        self._log.info("GATEWAY_STOPPED")
        return final

    def close(self) -> None:
        """Stop and release every sink."""
        self.stop()
        self._reporter.close()
        self._tap.close()

    def __enter__(self) -> "Gateway":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---------------- Control plane ----------------
    def _require_running(self, op: str) -> None:
        if self.state is not GatewayState.RUNNING:
            raise GatewayStateError(f"{op} requires a running gateway (state={self.state.value}).")

    def issue_command(self, text: str) -> Translation:
        """
        Translate and forward an ACM command on behalf of an operator.

        Rejections are returned to the caller, not written to the ACM.
        For `algo` commands `translation.pending` can be waited on.
        """
        self._require_running("issue_command")
        translation = self._translator.to_back_end(text)
        if translation.message is None:
            return translation

        try:
            self._back.write(self._back_codec.encode(translation.message))
        except TransportError:
            if translation.pending is not None:
                self._tracker.discard(translation.pending.idex)
            raise
        self._log.info("OPERATOR_COMMAND command=%r", translation.command)
        return translation

    def send_back_end(self, message: Message) -> int:
        self._require_running("send_back_end")
        return self._back.write(self._back_codec.encode(message))

    def send_front_end(self, text: str) -> int:
        self._require_running("send_front_end")
        return self._front.write(self._front_codec.encode(text))
