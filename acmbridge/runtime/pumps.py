# acmbridge/runtime/pumps.py
from __future__ import annotations

import logging
from typing import Optional

from acmbridge.interfaces.frame_sink import FrameEvent
from acmbridge.protocol.core.codec import BackEndCodec, FrontEndCodec
from acmbridge.protocol.core.frame import Frame
from acmbridge.protocol.core.messages import UnknownMessage
from acmbridge.protocol.errors import ProtocolError
from acmbridge.protocol.translator import CommandTranslator
from acmbridge.runtime import stats as stat_kinds
from acmbridge.runtime.link import SerialLink
from acmbridge.runtime.stats import GatewayStatistics
from acmbridge.runtime.tap import FrameTap
from acmbridge.transport.errors import TransportError, TransportTimeoutError


class DirectionPump:
    """
    read -> assemble -> decode -> translate -> encode -> write, for one direction.

    Never raises for steady-state faults: I/O errors, overflows and malformed
    frames are counted and the next iteration carries on.
    """

    READ_ERROR_BACKOFF_S = 0.05

    def __init__(
        self,
        source: SerialLink,
        target: SerialLink,
        *,
        translator: CommandTranslator,
        stats: GatewayStatistics,
        tap: FrameTap,
        forward: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.source = source
        self.target = target
        self.translator = translator
        self.stats = stats
        self.tap = tap
        self.forward = forward

        self._log = logger or logging.getLogger(__name__)
        self._front_codec = FrontEndCodec()
        self._back_codec = BackEndCodec(logger=self._log)

    # ---------------- Pump protocol ----------------
    def pump_once(self) -> Optional[float]:
        if not self.source.connected and not self.source.try_reopen():
            return self.source.reconnect_interval_s

        try:
            frames = self.source.read_frames()
        except TransportTimeoutError:
            return None
        except TransportError as e:
            self.stats.record_error(stat_kinds.IO)
            self.source.last_error = str(e)
            self._log.warning("READ_FAILED endpoint=%s err=%s", self.source.endpoint.value, e)
            return self.READ_ERROR_BACKOFF_S

        for frame in frames:
            self.handle_frame(frame)

        self.after_iteration()
        return None

    def on_unexpected_error(self) -> None:
        self.stats.record_error(stat_kinds.INTERNAL)
        self._log.exception("PUMP_EXCEPTION endpoint=%s", self.source.endpoint.value)

    # ---------------- Per-direction hooks ----------------
    def handle_frame(self, frame: Frame) -> None:
        raise NotImplementedError

    def after_iteration(self) -> None:
        return None

    # ---------------- Helpers ----------------
    def write(self, link: SerialLink, data: bytes) -> bool:
        try:
            link.write(data)
            return True
        except TransportTimeoutError as e:
            self.stats.record_error(stat_kinds.WRITE)
            self._log.warning("WRITE_TIMEOUT endpoint=%s len=%d err=%s", link.endpoint.value, len(data), e)
        except TransportError as e:
            self.stats.record_error(stat_kinds.WRITE)
            link.last_error = str(e)
            self._log.warning("WRITE_FAILED endpoint=%s len=%d err=%s", link.endpoint.value, len(data), e)
        return False


class FrontEndPump(DirectionPump):
    """ACM commands -> STM32 messages (or a local rejection back to the ACM)."""

    def handle_frame(self, frame: Frame) -> None:
        self.stats.record_frame(frame.endpoint)
        command = self._front_codec.decode(frame)

        if not self.forward:
            self.tap.publish(FrameEvent(frame, "monitor"))
            return

        translation = self.translator.to_back_end(command)

        if translation.reply is not None:
            self.stats.record_rejected()
            self.write(self.source, self._front_codec.encode(translation.reply))
            self.tap.publish(FrameEvent(frame, "rejected"))
            return

        message = translation.message
        try:
            data = self._back_codec.encode(message)
        except ProtocolError:
            self.stats.record_error(stat_kinds.INTERNAL)
            self._log.exception("ENCODE_FAILED command=%r", translation.command)
            if translation.pending is not None:
                self.translator.tracker.discard(translation.pending.idex)
            return

        sent = self.write(self.target, data)
        if not sent and translation.pending is not None:
            self.translator.tracker.discard(translation.pending.idex)

        self._log.info("ACM_TO_STM32 command=%r sent=%s", translation.command, sent)
        self.tap.publish(
            FrameEvent(frame, "decoded", msg_type=message.msg_type.value, forwarded=sent)
        )


class BackEndPump(DirectionPump):
    """STM32 messages -> ACM replies."""

    def handle_frame(self, frame: Frame) -> None:
        self.stats.record_frame(frame.endpoint)
        message = self._back_codec.decode(frame)

        if isinstance(message, UnknownMessage):
            # counted here once; the translator only logs unknown messages
            self.stats.record_error(stat_kinds.DECODE)
            self._log.warning("DECODE_FAILED reason=%s payload=%r", message.reason, frame.payload[:120])
            self.tap.publish(FrameEvent(frame, "unknown"))
            return

        msg_type = message.msg_type.value
        if not self.forward:
            self.tap.publish(FrameEvent(frame, "monitor", msg_type=msg_type))
            return

        reply = self.translator.to_front_end(message, raw=frame.payload)
        sent = False
        if reply is not None:
            sent = self.write(self.target, self._front_codec.encode(reply))
            self._log.info("STM32_TO_ACM msg_type=%s sent=%s", msg_type, sent)

        self.tap.publish(FrameEvent(frame, "decoded", msg_type=msg_type, forwarded=sent))

    def after_iteration(self) -> None:
        self.translator.tracker.expire()
