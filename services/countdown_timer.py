import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.config import settings
from core.logger import logger


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    EXPIRED = "expired"


class CountdownTimer:
    """
    Counts a number of seconds down to zero on the running event loop.

    Every interval the remaining value drops by one and ``on_tick(remaining)``
    is called; when it reaches zero ``on_expire()`` is called instead, once,
    and the countdown ends. ``stop()`` cancels the run for good: a wake-up that
    is already queued is discarded because every callback re-checks the run id
    after the sleep returns.

    ``sleep`` defaults to ``asyncio.sleep`` and can be swapped for a manual
    clock in tests.
    """

    def __init__(self, interval: Optional[float] = None, sleep: Optional[Callable[[float], Awaitable]] = None):
        self.interval = settings.TICK_INTERVAL_SECONDS if interval is None else interval
        self._sleep = sleep or asyncio.sleep
        self._state = TimerState.IDLE
        self._remaining = 0
        self._run_id = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.RUNNING

    def start(self, initial_seconds: int, on_tick: Callable[[int], None], on_expire: Callable[[], None]):
        """Start a new run. Must be called from inside the event loop."""
        if self._state is TimerState.RUNNING:
            raise RuntimeError("Countdown is already running")

        self._run_id += 1
        self._remaining = max(0, int(initial_seconds))
        self._state = TimerState.RUNNING
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._run_id, on_tick, on_expire)
        )
        logger.debug("Countdown started", seconds=self._remaining, run_id=self._run_id)

    def stop(self):
        """Cancel the current run. Safe to call any number of times."""
        if self._state is TimerState.RUNNING:
            self._state = TimerState.STOPPED
            logger.debug("Countdown stopped", remaining=self._remaining, run_id=self._run_id)

        # Invalidate any wake-up already scheduled for this run
        self._run_id += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def _is_current(self, run_id: int) -> bool:
        return self._state is TimerState.RUNNING and run_id == self._run_id

    async def _run(self, run_id: int, on_tick, on_expire):
        while self._remaining > 0:
            await self._sleep(self.interval)
            if not self._is_current(run_id):
                return

            self._remaining -= 1
            if self._remaining > 0:
                self._dispatch(on_tick, self._remaining)
                if not self._is_current(run_id):
                    return

        if self._is_current(run_id):
            self._state = TimerState.EXPIRED
            logger.debug("Countdown expired", run_id=run_id)
            self._dispatch(on_expire)

    def _dispatch(self, callback, *args):
        try:
            callback(*args)
        except Exception as e:
            logger.error("Countdown callback failed", callback=getattr(callback, "__name__", repr(callback)), error=str(e))
