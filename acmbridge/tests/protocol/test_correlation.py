from __future__ import annotations

import pytest

from acmbridge.protocol.core.frame import Endpoint
from acmbridge.protocol.core.messages import IndexedMessage
from acmbridge.protocol.correlation import MAX_IDEX, CorrelationTracker
from acmbridge.protocol.errors import ProtocolError


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


class RecordingListener:
    def __init__(self):
        self.rtts = []
        self.expired = 0

    def record_resolved(self, rtt_ms: float) -> None:
        self.rtts.append(rtt_ms)

    def record_expired(self, count: int = 1) -> None:
        self.expired += count


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def tracker(clock, listener):
    return CorrelationTracker(timeout_s=2.0, clock=clock, listener=listener)


def test_resolve_reports_round_trip_time(tracker, clock, listener):
    pending = tracker.register(5, Endpoint.BACK_END, command="algo -b 1")
    clock.t += 0.25

    resolved = tracker.resolve(5, IndexedMessage(idex=5, data={}))

    assert resolved is pending
    assert 5 not in tracker
    assert listener.rtts == [pytest.approx(250.0)]
    result = pending.wait(0)
    assert result["status"] == "ok"
    assert result["rtt_ms"] == pytest.approx(250.0)


def test_resolve_unknown_idex_is_ignored(tracker, listener):
    assert tracker.resolve(42) is None
    assert listener.rtts == []


def test_duplicate_register_is_rejected(tracker):
    tracker.register(1, Endpoint.BACK_END)
    with pytest.raises(ProtocolError):
        tracker.register(1, Endpoint.BACK_END)


def test_expire_removes_only_overdue_requests(tracker, clock, listener):
    old = tracker.register(1, Endpoint.BACK_END)
    clock.t += 1.5
    fresh = tracker.register(2, Endpoint.BACK_END)
    clock.t += 1.0

    expired = tracker.expire()

    assert expired == [old]
    assert 2 in tracker
    assert listener.expired == 1
    assert old.wait(0)["status"] == "timeout"
    assert not fresh.done()


def test_expire_without_overdue_requests_does_not_notify(tracker, listener):
    tracker.register(1, Endpoint.BACK_END)
    assert tracker.expire() == []
    assert listener.expired == 0


def test_discard_marks_send_failed(tracker):
    pending = tracker.register(3, Endpoint.BACK_END)
    tracker.discard(3)

    assert tracker.pending_count == 0
    assert pending.wait(0) == {"status": "send_failed", "idex": 3}


def test_next_idex_is_monotonic_and_skips_in_flight(tracker):
    assert tracker.next_idex() == 1
    tracker.register(2, Endpoint.BACK_END)
    assert tracker.next_idex() == 3


def test_next_idex_wraps_after_max():
    t = CorrelationTracker(first_idex=MAX_IDEX)
    assert t.next_idex() == MAX_IDEX
    assert t.next_idex() == 1
