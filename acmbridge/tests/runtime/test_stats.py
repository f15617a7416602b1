from __future__ import annotations

import threading

import pytest

from acmbridge.protocol.core.frame import Endpoint
from acmbridge.runtime import stats as stat_kinds
from acmbridge.runtime.stats import GatewayStatistics


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def test_snapshot_counts_and_rates():
    clock = FakeClock()
    st = GatewayStatistics(clock=clock)

    for _ in range(4):
        st.record_frame(Endpoint.FRONT_END)
    for _ in range(6):
        st.record_frame(Endpoint.BACK_END)
    st.record_error(stat_kinds.DECODE)
    st.record_rejected()
    clock.t = 2.0

    snap = st.snapshot()

    assert snap.front_end_frames == 4
    assert snap.back_end_frames == 6
    assert snap.errors == 1
    assert snap.decode_failures == 1
    assert snap.rejected_commands == 1
    assert snap.uptime_s == 2.0
    assert snap.front_end_rate == 2.0
    assert snap.back_end_rate == 3.0
    assert snap.error_rate_pct == pytest.approx(10.0)


def test_every_error_kind_bumps_total():
    st = GatewayStatistics()
    for kind in (stat_kinds.OVERFLOW, stat_kinds.DECODE, stat_kinds.IO, stat_kinds.WRITE, stat_kinds.INTERNAL):
        st.record_error(kind)

    snap = st.snapshot()
    assert snap.errors == 5
    assert snap.overflows == 1
    assert snap.io_errors == 2
    assert st.errors == 5


def test_rejections_are_not_errors():
    st = GatewayStatistics()
    st.record_rejected()
    assert st.snapshot().errors == 0


def test_rates_are_zero_without_uptime_or_frames():
    snap = GatewayStatistics(clock=FakeClock()).snapshot()
    assert snap.front_end_rate == 0.0
    assert snap.error_rate_pct == 0.0


def test_round_trip_outcomes():
    st = GatewayStatistics()
    st.record_resolved(12.5)
    st.record_expired(2)

    snap = st.snapshot()
    assert snap.resolved_requests == 1
    assert snap.last_rtt_ms == 12.5
    assert snap.expired_requests == 2


def test_snapshot_is_detached_from_live_counters():
    st = GatewayStatistics()
    st.record_error(stat_kinds.IO)
    snap = st.snapshot()
    st.record_error(stat_kinds.IO)

    assert snap.errors == 1
    assert snap.errors_by_kind == {"io": 1}


def test_counters_are_thread_safe():
    st = GatewayStatistics()

    def work():
        for _ in range(1000):
            st.record_frame(Endpoint.BACK_END)
            st.record_error(stat_kinds.DECODE)

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snap = st.snapshot()
    assert snap.back_end_frames == 4000
    assert snap.errors == 4000


def test_as_dict_exports_core_fields():
    d = GatewayStatistics().snapshot().as_dict()
    for key in ("front_end_frames", "back_end_frames", "errors", "uptime_s"):
        assert key in d
