"""Trailing-edge debounce."""

import threading
from typing import Any, Callable, Optional

from weekjournal.sync.clock import Clock, TimerHandle


class Debouncer:
    """Delay calls until a quiet period has passed.

    Only the last call made within the window runs. ``cancel`` drops the
    pending call and ``flush`` runs it immediately.
    """

    def __init__(self, clock: Clock, delay: float, fn: Callable[..., Any]):
        """Initialize the debouncer.

        Args:
            clock: Clock providing timers.
            delay: Quiet period in seconds.
            fn: Function to call with the last arguments.
        """
        self._clock = clock
        self.delay = delay
        self._fn = fn
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None
        self._args: Optional[tuple[tuple, dict]] = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting to run."""
        return self._args is not None

    @property
    def pending_args(self) -> Optional[tuple]:
        """Positional arguments of the waiting call, if any."""
        return self._args[0] if self._args is not None else None

    def call(self, *args: Any, **kwargs: Any) -> None:
        """Schedule fn, replacing any call still waiting."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._args = (args, kwargs)
            self._handle = self._clock.call_later(self.delay, self._fire)

    def _take(self) -> Optional[tuple[tuple, dict]]:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            args, self._args = self._args, None
            return args

    def _fire(self) -> None:
        pending = self._take()
        if pending is not None:
            args, kwargs = pending
            self._fn(*args, **kwargs)

    def flush(self) -> None:
        """Run the waiting call now, if there is one."""
        self._fire()

    def cancel(self) -> None:
        """Drop the waiting call."""
        self._take()
