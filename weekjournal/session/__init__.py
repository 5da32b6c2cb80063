"""Session handling: identity gate, idle timeout and logout broadcast."""

from weekjournal.session.bus import (
    FORCE_LOGOUT,
    ChannelBus,
    EventBus,
    StorageBus,
    open_bus,
)
from weekjournal.session.gate import SessionGate, SessionState
from weekjournal.session.idle import ACTIVITY_EVENTS, DEFAULT_IDLE_TIMEOUT, IdleMonitor

__all__ = [
    "FORCE_LOGOUT",
    "ChannelBus",
    "EventBus",
    "StorageBus",
    "open_bus",
    "SessionGate",
    "SessionState",
    "ACTIVITY_EVENTS",
    "DEFAULT_IDLE_TIMEOUT",
    "IdleMonitor",
]
