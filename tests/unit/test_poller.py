"""Tests for the self-rescheduling poller."""

from __future__ import annotations

import pytest

from apiconsole.core.poller import DEFAULT_POLL_INTERVAL, BackgroundPoller


def test_start_ticks_immediately_and_schedules_next(scheduler):
    ticks = []
    poller = BackgroundPoller(lambda: ticks.append(1), scheduler, interval=5.0)
    poller.start()
    assert ticks == [1]
    assert [delay for delay, _ in scheduler.calls] == [5.0]


def test_each_tick_rearms(scheduler):
    ticks = []
    poller = BackgroundPoller(lambda: ticks.append(1), scheduler)
    poller.start()
    for _ in range(3):
        scheduler.fire_next()
    assert len(ticks) == 4
    assert poller.ticks == 4
    assert len(scheduler.calls) == 1
    assert scheduler.calls[0][0] == DEFAULT_POLL_INTERVAL


def test_start_is_idempotent(scheduler):
    poller = BackgroundPoller(lambda: None, scheduler)
    poller.start()
    poller.start()
    assert poller.ticks == 1
    assert len(scheduler.calls) == 1


def test_failing_tick_still_rearms(scheduler):
    def explode():
        raise RuntimeError("tick failed")

    poller = BackgroundPoller(explode, scheduler)
    with pytest.raises(RuntimeError):
        poller.start()
    assert len(scheduler.calls) == 1


@pytest.mark.parametrize("interval", [0, -1.0])
def test_interval_must_be_positive(scheduler, interval):
    with pytest.raises(ValueError):
        BackgroundPoller(lambda: None, scheduler, interval=interval)
