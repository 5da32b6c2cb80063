"""Session gate.

Resolves who is signed in, keeps following sign-in/sign-out
notifications, and signs the user out after a period of inactivity.
A forced logout is broadcast so every other open session of the same
user ends too.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from weekjournal.db.cache import KeyValueCache
from weekjournal.db.store import CACHE_KEY
from weekjournal.errors import NetworkError
from weekjournal.remote.base import BaseRemote, Identity, Subscription
from weekjournal.session.bus import FORCE_LOGOUT, EventBus
from weekjournal.session.idle import DEFAULT_IDLE_TIMEOUT, IdleMonitor
from weekjournal.sync.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Resolution state of the current session."""

    UNRESOLVED = "unresolved"
    NO_SESSION = "no_session"
    HAS_SESSION = "has_session"


SessionCallback = Callable[[SessionState, Optional[Identity]], None]


class SessionGate:
    """Tracks the signed-in identity for one app instance."""

    def __init__(
        self,
        remote: BaseRemote,
        cache: KeyValueCache,
        clock: Optional[Clock] = None,
        bus: Optional[EventBus] = None,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        cache_key: str = CACHE_KEY,
        last_activity: Optional[float] = None,
    ):
        """Initialize the gate.

        Args:
            remote: Remote providing the identity service.
            cache: Local cache, cleared on forced logout.
            clock: Clock for the idle timer.
            bus: Bus used to broadcast and receive forced logouts.
            idle_timeout: Inactivity threshold in seconds.
            cache_key: Cache key of the journal document.
            last_activity: Activity time carried over from an earlier run.
        """
        self._remote = remote
        self._cache = cache
        self._clock = clock or SystemClock()
        self._bus = bus
        self.idle_timeout = idle_timeout
        self._cache_key = cache_key
        self._carried_activity = last_activity

        self.state = SessionState.UNRESOLVED
        self.user: Optional[Identity] = None
        self.mounted = False
        # "idle" or "remote" once a forced logout has ended the session
        self.logout_reason: Optional[str] = None

        self._callbacks: list[SessionCallback] = []
        self._subscription: Optional[Subscription] = None
        self._monitor: Optional[IdleMonitor] = None
        self._bus_unsubscribe: Optional[Callable[[], None]] = None

    # ==================== Lifecycle ====================

    def on_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Observe state transitions.

        Returns:
            A function that removes the observer.
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def mount(self) -> SessionState:
        """Subscribe to session changes and resolve the current identity."""
        if self.mounted:
            return self.state
        self.mounted = True
        self._subscription = self._remote.on_auth_state_change(self._on_auth_event)

        try:
            user = self._remote.get_user()
        except NetworkError as e:
            logger.error("Could not resolve current user: %s", e)
            user = None

        if self.mounted:
            self._set_user(user)
        return self.state

    def unmount(self) -> None:
        """Tear down subscriptions and timers; no transitions afterwards."""
        self.mounted = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._stop_watch()

    def _on_auth_event(self, event: str, identity: Optional[Identity]) -> None:
        if not self.mounted:
            return
        logger.debug("Auth event %s", event)
        self._set_user(identity)

    def _set_user(self, user: Optional[Identity]) -> None:
        previous = (self.state, self.user)
        self.user = user
        self.state = SessionState.HAS_SESSION if user else SessionState.NO_SESSION

        if user is not None and self._monitor is None:
            self._start_watch()
        elif user is None:
            self._stop_watch()

        if (self.state, self.user) != previous:
            for callback in list(self._callbacks):
                callback(self.state, self.user)

    # ==================== Idle Timeout ====================

    def _start_watch(self) -> None:
        self._monitor = IdleMonitor(
            self._clock,
            self.idle_timeout,
            self.force_logout,
            last_activity=self._carried_activity,
        )
        self._carried_activity = None
        if self._bus is not None:
            self._bus_unsubscribe = self._bus.subscribe(self._on_bus_message)
        self._monitor.start()

    def _stop_watch(self) -> None:
        if self._monitor is not None:
            self._monitor.stop()
            self._monitor = None
        if self._bus_unsubscribe is not None:
            self._bus_unsubscribe()
            self._bus_unsubscribe = None

    @property
    def last_activity(self) -> Optional[float]:
        """Last recorded activity while signed in (POSIX seconds)."""
        return self._monitor.last_activity if self._monitor else None

    def record_activity(self, kind: str) -> bool:
        """Forward an interaction signal to the idle monitor."""
        if self._monitor is None:
            return False
        return self._monitor.record_activity(kind)

    def visibility_regained(self) -> None:
        """Forward a return-to-foreground signal to the idle monitor."""
        if self._monitor is not None:
            self._monitor.visibility_regained()

    def _on_bus_message(self, message: str) -> None:
        if message == FORCE_LOGOUT and self.state == SessionState.HAS_SESSION:
            logger.info("Logout signalled by another session")
            self.logout_reason = "remote"
            self._end_session()

    def _end_session(self) -> None:
        self._stop_watch()
        try:
            self._cache.remove(self._cache_key)
        except OSError as e:
            logger.error("Could not clear local cache: %s", e)
        try:
            self._remote.sign_out()
        except NetworkError as e:
            logger.error("Sign out failed: %s", e)
        self._set_user(None)

    def force_logout(self) -> None:
        """End this session, clear the cache and tell other sessions."""
        if self.state != SessionState.HAS_SESSION:
            return
        self.logout_reason = "idle"
        try:
            self._end_session()
        finally:
            if self._bus is not None:
                self._bus.publish(FORCE_LOGOUT)

    # ==================== Sign-in ====================

    def sign_in(self, email: str, password: str) -> Identity:
        """Sign in and switch to the new identity."""
        identity = self._remote.sign_in(email, password)
        self.logout_reason = None
        if self.mounted:
            self._set_user(identity)
        return identity

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """Create an account; does not sign in."""
        return self._remote.sign_up(email, password)

    def sign_out(self) -> None:
        """Sign out of this session only and clear the local cache."""
        self._stop_watch()
        self._cache.remove(self._cache_key)
        try:
            self._remote.sign_out()
        finally:
            if self.mounted:
                self._set_user(None)

    def reset_password(self, email: str) -> None:
        """Send a password reset email."""
        self._remote.reset_password_email(email)
