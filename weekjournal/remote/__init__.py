"""Remote store backends for WeekJournal."""

from weekjournal.remote.base import BaseRemote, Identity, Subscription, WeekRow

__all__ = [
    "BaseRemote",
    "Identity",
    "Subscription",
    "WeekRow",
]
