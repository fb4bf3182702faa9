"""
Sunduk Timer - Cancelable Delayed Callbacks
===========================================

Cache validity is the only time-dependent behavior in Sunduk. It is driven by
a `CacheTimer`, a single-shot restartable countdown, which asks a `Scheduler`
for delayed callbacks instead of sleeping.

Schedulers
----------

**ThreadingScheduler**: Runs callbacks on `threading.Timer` daemon threads.
The default for stores created without a scheduler.

**AsyncioScheduler**: Runs callbacks through `loop.call_later`, keeping expiry
on the event loop that owns the store.

**ManualScheduler**: A deterministic clock for tests. Time only moves when
`advance()` is called, and due callbacks fire in due order during it.

```python
scheduler = ManualScheduler()
timer = CacheTimer(scheduler)
timer.arm(1000, lambda: print("expired"))
scheduler.advance(0.5)   # nothing
timer.arm(1000, lambda: print("expired"))  # restarts the countdown
scheduler.advance(0.75)  # nothing
scheduler.advance(0.25)  # prints "expired"
```
"""

import asyncio
import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    """Anything with a `cancel()` method; `threading.Timer` and asyncio handles qualify."""

    def cancel(self) -> Any: ...


class Scheduler(ABC):
    """Source of delayed callbacks."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` once after `delay` seconds; return a cancelable handle."""
        pass

    def now(self) -> float:
        return time.monotonic()


class ThreadingScheduler(Scheduler):
    """Delayed callbacks on daemon `threading.Timer` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler(Scheduler):
    """Delayed callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)

    def now(self) -> float:
        return self.loop.time()


class _ManualHandle:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """
    Fake clock that only moves on `advance()`.

    Callbacks scheduled for the same instant fire in scheduling order. A
    callback may schedule further callbacks; those fire within the same
    `advance()` call if they fall due before its end.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, _ManualHandle]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"Delay must be non-negative, got {delay}")
        handle = _ManualHandle(self._now + delay, callback)
        heapq.heappush(self._queue, (handle.due, next(self._sequence), handle))
        return handle

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards by {seconds}")
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            handle.callback()
        self._now = target


class CacheTimer:
    """
    Single-shot countdown that restarts on every `arm()`.

    Each `arm()` cancels the pending countdown, so `on_expire` fires at most
    once per arm. If a `lock` is given, expiry runs while holding it, which
    serializes expiry with whatever else the lock guards.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        lock: Optional[ContextManager] = None,
    ):
        self._scheduler = scheduler or ThreadingScheduler()
        self._lock = lock or threading.RLock()
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, duration_ms: int, on_expire: Callable[[], None]) -> None:
        if duration_ms < 0:
            raise ValueError(f"Duration must be non-negative, got {duration_ms}")

        with self._lock:
            self._cancel()
            self._generation += 1
            generation = self._generation

            def fire() -> None:
                with self._lock:
                    # Re-armed or disarmed while this callback was queued
                    if generation != self._generation or self._handle is None:
                        return
                    self._handle = None
                    on_expire()

            self._handle = self._scheduler.call_later(duration_ms / 1000.0, fire)

    def disarm(self) -> None:
        with self._lock:
            self._cancel()
            self._generation += 1

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


__all__ = [
    "TimerHandle",
    "Scheduler",
    "ThreadingScheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "CacheTimer",
]
