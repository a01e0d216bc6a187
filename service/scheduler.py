"""
Scheduled-task abstraction used for the debounce and auto-refresh timers.

ThreadingScheduler is the real one; ManualScheduler advances a fake clock so
timer behaviour can be driven deterministically.
"""
import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Protocol, Tuple


class ScheduledTask(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        ...


class ThreadingScheduler:
    """One daemon threading.Timer per scheduled call."""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _ManualTask:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Callbacks fire only from advance(); time is whatever advance() says."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, _ManualTask, Callable[[], None]]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTask:
        task = _ManualTask()
        heapq.heappush(self._queue, (self._now + delay, next(self._counter), task, callback))
        return task

    @property
    def pending(self) -> int:
        return sum(1 for _, _, task, _ in self._queue if not task.cancelled)

    def next_deadline(self) -> Optional[float]:
        live = [deadline for deadline, _, task, _ in self._queue if not task.cancelled]
        return min(live) if live else None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in deadline order."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, task, callback = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = deadline
            callback()
            fired += 1
        self._now = target
        return fired
