from __future__ import annotations

import time

from acmbridge.protocol._internal.pump_worker import PumpWorker


class FakePump:
    def __init__(self):
        self.calls = 0
        self.errors = 0
        self.raise_once = False
        self.delay = None

    def pump_once(self):
        self.calls += 1
        if self.raise_once:
            self.raise_once = False
            raise RuntimeError("boom")
        time.sleep(0.001)
        return self.delay

    def on_unexpected_error(self):
        self.errors += 1


def test_pump_worker_stops_cleanly():
    pump = FakePump()
    w = PumpWorker(pump)

    w.start()
    time.sleep(0.01)
    w.stop()
    w.join(timeout=0.2)

    assert not w.is_alive()
    assert pump.calls > 0


def test_pump_worker_keeps_running_after_exception():
    pump = FakePump()
    pump.raise_once = True
    w = PumpWorker(pump)

    w.start()

    deadline = time.time() + 0.5
    while pump.calls < 2 and time.time() < deadline:
        time.sleep(0.005)

    w.stop()
    w.join(timeout=0.2)

    assert not w.is_alive()
    assert pump.calls >= 2
    assert pump.errors == 1


def test_backoff_delay_is_cut_short_by_stop():
    pump = FakePump()
    pump.delay = 10.0
    w = PumpWorker(pump, name="pump-test")

    w.start()
    time.sleep(0.02)
    t0 = time.monotonic()
    w.stop()
    w.join(timeout=1.0)

    assert not w.is_alive()
    assert time.monotonic() - t0 < 1.0
    assert pump.calls == 1
    assert w.stopping
