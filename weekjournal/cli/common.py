"""Shared helpers for WeekJournal CLI commands."""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

import click
from rich.console import Console
from rich.panel import Panel

from weekjournal.config import (
    backend_mode,
    debounce_seconds,
    home_dir,
    idle_timeout_seconds,
    load_config,
    supabase_credentials,
)
from weekjournal.errors import JournalError

if TYPE_CHECKING:
    from weekjournal.app import JournalApp

console = Console()

# Cache key holding the last time the user ran a command while signed in.
ACTIVITY_KEY = "__last_activity__"

_LEVEL_STYLES = {
    "info": ("cyan", "ℹ"),
    "success": ("green", "✓"),
    "warning": ("yellow", "⚠"),
    "error": ("red", "✗"),
}


def _get_config() -> dict:
    """Load configuration, falling back to defaults when none exists."""
    try:
        return load_config() or {}
    except JournalError as e:
        console.print(Panel(
            f"[red]{e}[/red]",
            title="[bold red]Configuration Error[/bold red]",
            border_style="red",
        ))
        raise SystemExit(1)


def _get_cache():
    """Get the local cache instance."""
    from weekjournal.db.cache import KeyValueCache

    return KeyValueCache(home_dir() / "cache")


def _get_remote(config: dict):
    """Get the remote store for the configured backend."""
    session_path = home_dir() / "session.json"

    if backend_mode(config) == "supabase":
        from weekjournal.remote.cloud import SupabaseRemote

        url, key = supabase_credentials(config)
        return SupabaseRemote(url=url, key=key, session_path=session_path)
    else:
        from weekjournal.remote.local import SqliteRemote

        return SqliteRemote(home_dir() / "weekjournal.db", session_path=session_path)


@contextmanager
def open_app(carry_activity: bool = True) -> Iterator["JournalApp"]:
    """Open the journal for one command and close it afterwards.

    Each command counts as user activity. The activity time is kept in the
    cache so the idle timeout also applies between commands.

    Args:
        carry_activity: Resume the idle timer from the previous command.
    """
    from weekjournal.app import JournalApp
    from weekjournal.session.bus import open_bus
    from weekjournal.sync.clock import SystemClock

    config = _get_config()
    cache = _get_cache()
    clock = SystemClock()

    try:
        remote = _get_remote(config)
    except JournalError as e:
        print_error("Backend Unavailable", str(e))
        raise SystemExit(1)

    last_activity = cache.get(ACTIVITY_KEY) if carry_activity else None
    if not isinstance(last_activity, (int, float)):
        last_activity = None

    app = JournalApp(
        remote,
        cache,
        clock=clock,
        bus=open_bus(cache, clock, channel_available=False),
        idle_timeout=idle_timeout_seconds(config),
        debounce=debounce_seconds(config),
        last_activity=last_activity,
    )
    app.open()
    app.gate.record_activity("keydown")
    try:
        yield app
    finally:
        if app.gate.last_activity is not None:
            cache.set(ACTIVITY_KEY, app.gate.last_activity)
        else:
            cache.remove(ACTIVITY_KEY)
        app.close()


def require_session(app) -> None:
    """Exit with a hint when nobody is signed in."""
    if app.signed_in:
        return
    if app.gate.logout_reason == "idle":
        reason = "Your session ended after a period of inactivity."
    else:
        reason = "You are not signed in."
    console.print(Panel(
        f"[yellow]{reason}[/yellow]\n\n"
        "Run [cyan]weekjournal login[/cyan] to sign in.",
        title="[bold yellow]Sign-in Required[/bold yellow]",
        border_style="yellow",
    ))
    raise SystemExit(1)


def print_notice(notice) -> None:
    """Print an application notice."""
    color, icon = _LEVEL_STYLES.get(notice.level, _LEVEL_STYLES["info"])
    console.print(f"[{color}]{icon}[/{color}] {notice.message}")


def print_error(title: str, message: str) -> None:
    console.print(Panel(
        f"[red]✗[/red] {message}",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


def apply_week(app, date_value: Optional[str]) -> None:
    """Select the week given by --date (any date inside it)."""
    if date_value:
        app.set_week(date_value)


date_option = click.option(
    "-d", "--date", "date_value",
    default=None,
    help="Any date inside the target week (default: this week).",
)
