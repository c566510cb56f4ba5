"""Single-threaded timer loop.

Playwright's sync API must be driven from the thread that created it, so the
poll loop never uses worker threads: timers are queued on a ``sched``
scheduler and executed one at a time on the caller's thread by ``run()``.
"""
from __future__ import annotations

import sched
import time
from typing import Callable, Optional


def _default_sleep(ms: float) -> None:
    time.sleep(ms / 1000)


class TimerHandle:
    def __init__(self, delay_ms: int) -> None:
        self.delay_ms = delay_ms
        self.cancelled = False
        self.fired = False
        self._queue: Optional[sched.scheduler] = None
        self._event: Optional[sched.Event] = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self.fired = True
        callback()

    def cancel(self) -> bool:
        """Cancel the timer. Returns False when it already fired or was cancelled."""
        if self.cancelled or self.fired or self._queue is None:
            return False
        try:
            self._queue.cancel(self._event)
        except ValueError:
            return False
        self.cancelled = True
        return True


class LoopScheduler:
    def __init__(
        self,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        tick_ms: int = 250,
    ) -> None:
        if tick_ms < 1:
            raise ValueError("tick_ms must be >= 1")
        self._sleep = sleep or _default_sleep
        self.tick_ms = tick_ms
        self._queue = sched.scheduler(clock, self._delay)

    def _delay(self, seconds: float) -> None:
        # sched calls delayfunc(0) after every event; nothing to wait for then.
        if seconds <= 0:
            return
        self._sleep(min(seconds * 1000, self.tick_ms))

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        handle = TimerHandle(delay_ms)
        handle._queue = self._queue
        handle._event = self._queue.enter(delay_ms / 1000, 0, handle._fire, (callback,))
        return handle

    @property
    def pending(self) -> int:
        return len(self._queue.queue)

    def run(self) -> None:
        """Block until no timers remain."""
        self._queue.run(blocking=True)

    def run_pending(self) -> None:
        """Run timers that are already due and return without sleeping."""
        self._queue.run(blocking=False)
