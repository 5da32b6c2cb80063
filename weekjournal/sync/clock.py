"""Time sources and timers.

Components never read the wall clock or start timers directly; they get
a Clock so tests can drive time with ManualClock.
"""

import heapq
import itertools
import threading
import time as _time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Union


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call twice."""
        pass


class Clock(ABC):
    """Abstract time source with one-shot timers."""

    @abstractmethod
    def time(self) -> float:
        """Current time as POSIX seconds."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        pass

    def now(self) -> datetime:
        """Current time as a naive local datetime."""
        return datetime.fromtimestamp(self.time())


class _ThreadTimerHandle(TimerHandle):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class SystemClock(Clock):
    """Wall clock with timers on daemon threads."""

    def time(self) -> float:
        return _time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.daemon = True
        timer.start()
        return _ThreadTimerHandle(timer)


class _ManualTimerHandle(TimerHandle):
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock(Clock):
    """Deterministic clock that only moves when advanced.

    Callbacks run synchronously inside ``advance`` in due order, with the
    clock set to each callback's due time while it runs.
    """

    def __init__(self, start: Union[datetime, float, None] = None):
        """Initialize the clock.

        Args:
            start: Initial time as datetime or POSIX seconds (default: now).
        """
        if start is None:
            start = _time.time()
        elif isinstance(start, datetime):
            start = start.timestamp()
        self._now = float(start)
        self._queue: list[tuple[float, int, Callable[[], None], _ManualTimerHandle]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualTimerHandle()
        heapq.heappush(
            self._queue, (self._now + max(delay, 0.0), next(self._seq), callback, handle)
        )
        return handle

    def advance(self, seconds: float) -> None:
        """Move time forward, running every callback that comes due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, callback, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if not handle.cancelled:
                callback()
        self._now = target

    @property
    def pending(self) -> int:
        """Number of scheduled, uncancelled callbacks."""
        return sum(1 for *_, handle in self._queue if not handle.cancelled)

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live callback, if any."""
        live = [due for due, _, _, handle in self._queue if not handle.cancelled]
        return min(live) if live else None
