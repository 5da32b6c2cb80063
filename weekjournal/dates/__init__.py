"""Date and week bucketing helpers."""

from weekjournal.dates.weeks import (
    format_date,
    parse_week_key,
    shift_week,
    to_local_midnight,
    week_bounds,
    week_end,
    week_key,
    week_start,
)

__all__ = [
    "format_date",
    "parse_week_key",
    "shift_week",
    "to_local_midnight",
    "week_bounds",
    "week_end",
    "week_key",
    "week_start",
]
