"""Same-origin event bus.

Sessions of the same user (other shells, other app instances) are told
about a forced logout through an EventBus. Two backends exist: an
in-process broadcast channel, and a storage-key fallback that works
across processes sharing the local cache directory.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Optional

from weekjournal.db.cache import KeyValueCache
from weekjournal.sync.clock import Clock, TimerHandle

FORCE_LOGOUT = "force-logout"
DEFAULT_CHANNEL = "auth-events"
SIGNAL_KEY = "__force_logout__"

MessageCallback = Callable[[str], None]


class EventBus(ABC):
    """Abstract broadcast bus. Publishers never receive their own messages."""

    @abstractmethod
    def publish(self, message: str) -> None:
        """Send a message to every other listener."""
        pass

    @abstractmethod
    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        """Listen for messages.

        Returns:
            A function that removes the listener.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop sending and receiving."""
        pass


class ChannelBus(EventBus):
    """In-process broadcast channel, one per name per participant."""

    _channels: ClassVar[dict[str, list["ChannelBus"]]] = {}
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, name: str = DEFAULT_CHANNEL):
        self.name = name
        self._callbacks: list[MessageCallback] = []
        self._closed = False
        with self._lock:
            self._channels.setdefault(name, []).append(self)

    def publish(self, message: str) -> None:
        if self._closed:
            return
        with self._lock:
            peers = [peer for peer in self._channels.get(self.name, []) if peer is not self]
        for peer in peers:
            peer._deliver(message)

    def _deliver(self, message: str) -> None:
        for callback in list(self._callbacks):
            callback(message)

    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._callbacks.clear()
        with self._lock:
            peers = self._channels.get(self.name, [])
            if self in peers:
                peers.remove(self)


class StorageBus(EventBus):
    """Signals through a key in the shared local cache.

    Publishing writes a fresh value under the signal key; listeners poll
    the key on the clock and treat any value they did not write as a
    message.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        clock: Clock,
        key: str = SIGNAL_KEY,
        interval: float = 1.0,
    ):
        """Initialize the bus.

        Args:
            cache: Cache shared by all participants.
            clock: Clock driving the polling timer.
            key: Cache key used for signalling.
            interval: Poll interval in seconds.
        """
        self._cache = cache
        self._clock = clock
        self.key = key
        self.interval = interval
        self._callbacks: list[MessageCallback] = []
        self._last_seen: Any = cache.get(key)
        self._timer: Optional[TimerHandle] = None
        self._closed = False

    def publish(self, message: str) -> None:
        if self._closed:
            return
        value = {"message": message, "at": self._clock.time(), "nonce": uuid.uuid4().hex}
        self._cache.set(self.key, value)
        self._last_seen = value

    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        self._callbacks.append(callback)
        if self._timer is None and not self._closed:
            self._schedule()

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
            if not self._callbacks:
                self._cancel()

        return unsubscribe

    def poll(self) -> None:
        """Deliver a signal written by someone else since the last poll."""
        current = self._cache.get(self.key)
        if current is None or current == self._last_seen:
            return
        self._last_seen = current
        message = current.get("message", FORCE_LOGOUT) if isinstance(current, dict) else FORCE_LOGOUT
        for callback in list(self._callbacks):
            callback(message)

    def _schedule(self) -> None:
        self._timer = self._clock.call_later(self.interval, self._tick)

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._timer = None
        if self._closed or not self._callbacks:
            return
        self.poll()
        if not self._closed and self._callbacks:
            self._schedule()

    def close(self) -> None:
        self._closed = True
        self._callbacks.clear()
        self._cancel()


def open_bus(
    cache: KeyValueCache,
    clock: Clock,
    channel_available: bool = True,
    name: str = DEFAULT_CHANNEL,
) -> EventBus:
    """Open the broadcast channel, or the storage fallback without one."""
    if channel_available:
        return ChannelBus(name)
    return StorageBus(cache, clock)
