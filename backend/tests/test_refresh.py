import threading

import pytest

from app.core.errors import TransientStoreError
from app.services.refresh import RefreshCoordinator, register_for_refresh


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Source:
    def __init__(self, fail_with=None):
        self.calls = 0
        self.fail_with = fail_with

    def __call__(self):
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def clock():
    return FakeClock()


def coordinator(source, clock, **options):
    return RefreshCoordinator(source, clock=clock, **options)


@pytest.mark.parametrize("stale_time,interval", [
    (60, 30),
    (120, 30),
    (10, 5),
    (1, 1),
    (0.5, 1),
])
def test_interval_is_half_stale_time_clamped(stale_time, interval):
    assert RefreshCoordinator(lambda: None, stale_time=stale_time).interval == interval


def test_stale_time_must_be_positive():
    with pytest.raises(ValueError):
        RefreshCoordinator(lambda: None, stale_time=0)


def test_tick_waits_until_data_is_stale(clock):
    source = Source()
    coord = coordinator(source, clock, stale_time=60)

    clock.advance(30)
    assert coord.tick() is False
    clock.advance(30)
    assert coord.tick() is False  # exactly stale_time is still fresh
    clock.advance(1)
    assert coord.tick() is True
    assert source.calls == 1
    assert coord.last_refresh == clock.now
    assert coord.tick() is False


def test_hidden_host_suppresses_every_automatic_trigger(clock):
    source = Source()
    coord = coordinator(source, clock, stale_time=10)
    coord.notify_visibility(False)

    clock.advance(100)
    assert coord.tick() is False
    assert coord.notify_focus() is False
    assert coord.notify_online() is False
    assert source.calls == 0

    assert coord.notify_visibility(True) is True
    assert source.calls == 1


def test_visibility_refreshes_only_on_transition(clock):
    source = Source()
    coord = coordinator(source, clock)
    assert coord.notify_visibility(True) is False
    assert source.calls == 0


def test_focus_and_online_respect_their_flags(clock):
    source = Source()
    coord = coordinator(source, clock, refresh_on_focus=False)
    assert coord.notify_focus() is False
    assert coord.notify_online() is True

    coord = coordinator(source, clock, refresh_on_online=False)
    assert coord.notify_online() is False
    assert coord.notify_focus() is True
    assert source.calls == 2


def test_manual_refresh_ignores_staleness_and_visibility(clock):
    source = Source()
    coord = coordinator(source, clock, stale_time=60)
    coord.notify_visibility(False)
    clock.advance(5)

    assert coord.manual_refresh() is True
    assert source.calls == 1
    assert coord.last_refresh == clock.now


def test_only_one_refresh_runs_at_a_time(clock):
    seen = []

    def refresh():
        seen.append(coord.notify_focus())

    coord = coordinator(refresh, clock)
    assert coord.notify_online() is True
    assert seen == [False]


def test_failure_still_advances_the_clock(clock):
    source = Source(fail_with=RuntimeError("boom"))
    coord = coordinator(source, clock, stale_time=10)
    clock.advance(11)

    assert coord.tick() is True
    assert coord.last_refresh == clock.now
    clock.advance(1)
    assert coord.tick() is False
    assert source.calls == 1


def test_manual_refresh_raises_to_caller(clock):
    coord = coordinator(Source(fail_with=RuntimeError("boom")), clock)
    with pytest.raises(RuntimeError):
        coord.manual_refresh()


def test_transient_failure_retries_on_next_tick(clock):
    source = Source(fail_with=TransientStoreError("timeout"))
    coord = coordinator(source, clock, stale_time=60)

    assert coord.notify_focus() is True
    source.fail_with = None
    assert coord.tick() is True
    assert source.calls == 2
    assert coord.tick() is False


def test_register_for_refresh_passes_options():
    source = Source()
    coord = register_for_refresh(source, {"stale_time": 4, "refresh_on_focus": False, "start": False})
    assert coord.stale_time == 4
    assert coord.interval == 2
    assert coord.notify_focus() is False
    coord.stop()


def test_timer_thread_refreshes_stale_data():
    refreshed = threading.Event()
    coord = register_for_refresh(refreshed.set, {"stale_time": 0.5})
    try:
        assert refreshed.wait(5)
    finally:
        coord.stop()


def test_simultaneous_visibility_events_refresh_once(clock):
    source = Source()
    coord = coordinator(source, clock)
    coord.notify_visibility(False)
    barrier = threading.Barrier(8)

    def show():
        barrier.wait()
        coord.notify_visibility(True)

    threads = [threading.Thread(target=show) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)
    assert source.calls == 1
    assert coord.visible is True
