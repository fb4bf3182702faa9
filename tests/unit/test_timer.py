"""Unit tests for schedulers and the cache timer."""

import asyncio
import threading

import pytest

from sunduk import AsyncioScheduler, CacheTimer, ThreadingScheduler


@pytest.mark.unit
def test_manual_scheduler_fires_only_when_due(scheduler):
    """Callbacks fire once the clock reaches their due time"""
    fired = []
    scheduler.call_later(1.0, lambda: fired.append("a"))

    scheduler.advance(0.5)
    assert fired == []

    scheduler.advance(0.5)
    assert fired == ["a"]
    assert scheduler.now() == 1.0


@pytest.mark.unit
def test_manual_scheduler_fires_in_due_order(scheduler):
    """Callbacks fire in due order, ties in scheduling order"""
    fired = []
    scheduler.call_later(2.0, lambda: fired.append("late"))
    scheduler.call_later(1.0, lambda: fired.append("early"))
    scheduler.call_later(1.0, lambda: fired.append("early-2"))

    scheduler.advance(5)

    assert fired == ["early", "early-2", "late"]


@pytest.mark.unit
def test_manual_scheduler_skips_cancelled(scheduler):
    """A cancelled handle never fires"""
    fired = []
    handle = scheduler.call_later(1.0, lambda: fired.append("x"))

    handle.cancel()
    scheduler.advance(2)

    assert fired == []
    assert scheduler.pending == 0


@pytest.mark.unit
def test_manual_scheduler_rejects_negative_time(scheduler):
    """Time cannot move backwards"""
    with pytest.raises(ValueError):
        scheduler.advance(-1)


@pytest.mark.unit
def test_cache_timer_fires_once_after_duration(scheduler):
    """arm() schedules one expiry after the duration"""
    timer = CacheTimer(scheduler)
    fired = []

    timer.arm(1000, lambda: fired.append(scheduler.now()))
    assert timer.armed

    scheduler.advance(10)

    assert fired == [1.0]
    assert not timer.armed


@pytest.mark.unit
def test_cache_timer_rearm_restarts_countdown(scheduler):
    """Arming again before expiry cancels the first countdown"""
    timer = CacheTimer(scheduler)
    fired = []

    timer.arm(1000, lambda: fired.append(scheduler.now()))
    scheduler.advance(0.5)
    timer.arm(1000, lambda: fired.append(scheduler.now()))
    scheduler.advance(0.75)
    assert fired == []

    scheduler.advance(0.25)
    assert fired == [1.5]

    scheduler.advance(10)
    assert fired == [1.5]


@pytest.mark.unit
def test_cache_timer_disarm_cancels_without_firing(scheduler):
    """disarm() drops the pending expiry"""
    timer = CacheTimer(scheduler)
    fired = []
    timer.arm(1000, lambda: fired.append(True))

    timer.disarm()
    scheduler.advance(5)

    assert fired == []
    assert not timer.armed


@pytest.mark.unit
def test_cache_timer_rejects_negative_duration(scheduler):
    """Durations are non-negative"""
    with pytest.raises(ValueError):
        CacheTimer(scheduler).arm(-1, lambda: None)


@pytest.mark.unit
def test_threading_scheduler_runs_callback():
    """ThreadingScheduler runs the callback on a timer thread"""
    done = threading.Event()

    ThreadingScheduler().call_later(0.01, done.set)

    assert done.wait(2.0)


@pytest.mark.unit
def test_threading_scheduler_cancel():
    """Cancelled thread timers never run"""
    done = threading.Event()

    handle = ThreadingScheduler().call_later(0.05, done.set)
    handle.cancel()

    assert not done.wait(0.2)


@pytest.mark.unit
def test_asyncio_scheduler_runs_on_loop():
    """AsyncioScheduler uses the running loop's call_later"""

    async def main():
        fired = asyncio.Event()
        scheduler = AsyncioScheduler()
        timer = CacheTimer(scheduler)
        timer.arm(10, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2.0)
        return timer.armed

    assert asyncio.run(main()) is False
