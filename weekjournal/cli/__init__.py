"""CLI commands for WeekJournal.

This package provides the command-line interface for WeekJournal,
including authentication, weekly editing, imports and backups.
"""

from weekjournal.cli.main import cli, main

__all__ = ["cli", "main"]
