"""File importers: broker trade logs, JSON backups and screenshots."""

from weekjournal.importers.tradelog import (
    TradeSummary,
    parse_trade_log,
    read_trade_log,
    summarize_week,
)
from weekjournal.importers.backup import export_backup, parse_backup, read_backup
from weekjournal.importers.screenshots import load_screenshots

__all__ = [
    "TradeSummary",
    "parse_trade_log",
    "read_trade_log",
    "summarize_week",
    "export_backup",
    "parse_backup",
    "read_backup",
    "load_screenshots",
]
