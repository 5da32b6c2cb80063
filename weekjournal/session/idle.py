"""Inactivity timeout."""

import logging
from typing import Callable, Optional

from weekjournal.sync.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 30 * 60
CHECK_GRACE = 1.0

# Interaction signals that count as activity.
ACTIVITY_EVENTS = frozenset(
    {"pointermove", "pointerdown", "keydown", "scroll", "touchstart"}
)


class IdleMonitor:
    """Calls ``on_idle`` once no activity has been seen for ``timeout``.

    The check runs ``timeout + 1s`` after the last activity. After firing
    the monitor stops; create a new one for the next session.
    """

    def __init__(
        self,
        clock: Clock,
        timeout: float,
        on_idle: Callable[[], None],
        last_activity: Optional[float] = None,
    ):
        """Initialize the monitor.

        Args:
            clock: Clock for time and timers.
            timeout: Inactivity threshold in seconds.
            on_idle: Called once when the threshold is reached.
            last_activity: Activity time carried over from an earlier run
                (POSIX seconds); defaults to now.
        """
        self._clock = clock
        self.timeout = timeout
        self._on_idle = on_idle
        self._resumed = last_activity is not None
        self._last_activity = last_activity if last_activity is not None else clock.time()
        self._timer: Optional[TimerHandle] = None
        self._running = False

    @property
    def last_activity(self) -> float:
        """Time of the last recorded activity (POSIX seconds)."""
        return self._last_activity

    @property
    def running(self) -> bool:
        return self._running

    def idle_for(self) -> float:
        """Seconds since the last activity."""
        return self._clock.time() - self._last_activity

    def start(self) -> None:
        """Begin watching. A carried-over activity time is checked at once."""
        if self._running:
            return
        self._running = True
        if self._resumed:
            self.visibility_regained()
        else:
            self._schedule(self.timeout + CHECK_GRACE)

    def stop(self) -> None:
        """Stop watching without firing."""
        self._running = False
        self._cancel()

    def reset(self) -> None:
        """Record activity now and restart the countdown."""
        if not self._running:
            return
        self._last_activity = self._clock.time()
        self._schedule(self.timeout + CHECK_GRACE)

    def record_activity(self, kind: str) -> bool:
        """Record an interaction signal.

        Returns:
            True if ``kind`` is an activity signal, False if it was ignored.
        """
        if kind not in ACTIVITY_EVENTS:
            return False
        self.reset()
        return True

    def visibility_regained(self) -> None:
        """Handle the user coming back: expire at once if idle too long."""
        if not self._running:
            return
        if self.idle_for() >= self.timeout:
            self._expire()
        else:
            self.reset()

    def _schedule(self, delay: float) -> None:
        self._cancel()
        self._timer = self._clock.call_later(delay, self._check)

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _check(self) -> None:
        self._timer = None
        if not self._running:
            return
        elapsed = self.idle_for()
        if elapsed >= self.timeout:
            self._expire()
        else:
            self._schedule(self.timeout - elapsed + CHECK_GRACE)

    def _expire(self) -> None:
        self.stop()
        logger.info("Session idle for %.0fs, logging out", self.idle_for())
        self._on_idle()
