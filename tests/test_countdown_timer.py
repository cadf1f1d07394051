import asyncio

import pytest

from services.countdown_timer import CountdownTimer, TimerState
from conftest import settle


class Recorder:
    def __init__(self):
        self.ticks = []
        self.expired = 0

    def on_tick(self, remaining):
        self.ticks.append(remaining)

    def on_expire(self):
        self.expired += 1


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def timer(clock):
    return CountdownTimer(sleep=clock.sleep)


async def test_ticks_down_and_expires_once(timer, clock, recorder):
    timer.start(3, recorder.on_tick, recorder.on_expire)

    await clock.advance(5)

    assert recorder.ticks == [2, 1]
    assert recorder.expired == 1
    assert timer.state is TimerState.EXPIRED
    assert timer.remaining == 0


async def test_no_callback_before_first_interval(timer, clock, recorder):
    timer.start(3, recorder.on_tick, recorder.on_expire)
    await settle()

    assert recorder.ticks == []
    assert timer.remaining == 3
    assert timer.is_running


async def test_zero_seconds_expires_without_ticking(timer, recorder):
    timer.start(0, recorder.on_tick, recorder.on_expire)
    await settle()

    assert recorder.ticks == []
    assert recorder.expired == 1


async def test_stop_halts_ticks(timer, clock, recorder):
    timer.start(10, recorder.on_tick, recorder.on_expire)
    await clock.advance(2)

    timer.stop()
    await clock.advance(20)

    assert recorder.ticks == [9, 8]
    assert recorder.expired == 0
    assert timer.state is TimerState.STOPPED
    assert timer.remaining == 8


async def test_stop_is_idempotent(timer, clock, recorder):
    timer.stop()
    timer.start(5, recorder.on_tick, recorder.on_expire)
    timer.stop()
    timer.stop()
    await clock.advance(10)

    assert recorder.ticks == []
    assert timer.state is TimerState.STOPPED


async def test_stop_discards_wakeup_already_queued(timer, clock, recorder):
    timer.start(1, recorder.on_tick, recorder.on_expire)

    clock.release(1)  # expiry wake-up is now queued on the loop
    timer.stop()
    await settle()

    assert recorder.expired == 0


async def test_stop_after_expiry_keeps_expired_state(timer, clock, recorder):
    timer.start(1, recorder.on_tick, recorder.on_expire)
    await clock.advance(1)

    timer.stop()

    assert timer.state is TimerState.EXPIRED
    assert recorder.expired == 1


async def test_stop_from_expire_callback(timer, clock):
    calls = []

    def on_expire():
        calls.append("expire")
        timer.stop()

    timer.start(2, lambda remaining: calls.append(remaining), on_expire)
    await clock.advance(4)

    assert calls == [1, "expire"]


async def test_start_while_running_raises(timer, recorder):
    timer.start(5, recorder.on_tick, recorder.on_expire)

    with pytest.raises(RuntimeError):
        timer.start(5, recorder.on_tick, recorder.on_expire)
    timer.stop()


async def test_restart_after_stop_uses_new_value(timer, clock, recorder):
    timer.start(10, recorder.on_tick, recorder.on_expire)
    await clock.advance(3)
    timer.stop()

    timer.start(2, recorder.on_tick, recorder.on_expire)
    await clock.advance(3)

    assert recorder.ticks == [9, 8, 7, 1]
    assert recorder.expired == 1


async def test_failing_tick_callback_keeps_counting(timer, clock, recorder):
    def broken(remaining):
        raise ValueError("render failed")

    timer.start(3, broken, recorder.on_expire)
    await clock.advance(3)

    assert recorder.expired == 1


async def test_real_sleep_interval():
    recorder = Recorder()
    timer = CountdownTimer(interval=0.01)

    timer.start(2, recorder.on_tick, recorder.on_expire)
    for _ in range(100):
        if recorder.expired:
            break
        await asyncio.sleep(0.01)

    assert recorder.ticks == [1]
    assert recorder.expired == 1
