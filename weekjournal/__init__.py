"""WeekJournal - weekly trading journal with trade-log import and sync."""

__version__ = "0.1.0"
