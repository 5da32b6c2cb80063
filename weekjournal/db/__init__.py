"""Local persistence for WeekJournal."""
