"""Data models for WeekJournal."""

from weekjournal.models.trade import TradeRecord
from weekjournal.models.checks import CustomCheck, FIXED_CHECKS, FIXED_CHECK_IDS
from weekjournal.models.journal import JournalEntry, Screenshot, WeekStats

__all__ = [
    "TradeRecord",
    "CustomCheck",
    "FIXED_CHECKS",
    "FIXED_CHECK_IDS",
    "JournalEntry",
    "Screenshot",
    "WeekStats",
]
