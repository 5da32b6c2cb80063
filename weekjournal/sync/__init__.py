"""Clock, debounce and remote synchronization."""

from weekjournal.sync.clock import Clock, ManualClock, SystemClock, TimerHandle
from weekjournal.sync.debounce import Debouncer
from weekjournal.sync.layer import DEFAULT_DEBOUNCE_SECONDS, SyncLayer

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
    "TimerHandle",
    "Debouncer",
    "DEFAULT_DEBOUNCE_SECONDS",
    "SyncLayer",
]
