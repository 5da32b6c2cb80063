"""Journal application service.

Ties the session gate, entry store and sync layer together and exposes
the operations the CLI offers. Expected failures (bad files, network
trouble) come back as Notices rather than exceptions.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from weekjournal.dates.weeks import DateLike, parse_week_key, shift_week, week_key
from weekjournal.db.cache import KeyValueCache
from weekjournal.db.store import EntryStore, checklist_score, toggle_answer
from weekjournal.errors import FormatError, ValidationError
from weekjournal.importers.backup import (
    default_backup_name,
    export_backup,
    read_backup,
    write_backup,
)
from weekjournal.importers.screenshots import load_screenshots
from weekjournal.importers.tradelog import parse_trade_log, read_trade_log, summarize_week
from weekjournal.models import CustomCheck, JournalEntry, WeekStats
from weekjournal.remote.base import BaseRemote, Identity
from weekjournal.session.bus import EventBus
from weekjournal.session.gate import SessionGate, SessionState
from weekjournal.session.idle import DEFAULT_IDLE_TIMEOUT
from weekjournal.sync.clock import Clock, SystemClock
from weekjournal.sync.layer import DEFAULT_DEBOUNCE_SECONDS, SyncLayer

logger = logging.getLogger(__name__)


class Notice(BaseModel):
    """A user-facing result message."""

    level: Literal["info", "success", "warning", "error"] = Field(default="info")
    message: str = Field(..., description="Text shown to the user")

    model_config = {"frozen": True}


class WeekSummary(BaseModel):
    """One row of the history table."""

    key: str
    start: date
    end: date
    number_of_trades: int
    pnl: float
    score: int
    tags: list[str] = Field(default_factory=list)
    has_notes: bool = False

    model_config = {"frozen": True}


class JournalApp:
    """The weekly journal for whoever is signed in."""

    def __init__(
        self,
        remote: BaseRemote,
        cache: KeyValueCache,
        clock: Optional[Clock] = None,
        bus: Optional[EventBus] = None,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        last_activity: Optional[float] = None,
    ):
        """Initialize the application.

        Args:
            remote: Remote store and identity service.
            cache: Local cache.
            clock: Clock for timestamps and timers.
            bus: Bus for cross-session logout signals.
            idle_timeout: Inactivity threshold in seconds.
            debounce: Sync quiet period in seconds.
            last_activity: Activity time carried over from an earlier run.
        """
        self.clock = clock or SystemClock()
        self.remote = remote
        self.debounce = debounce
        self.store = EntryStore(cache, now=self.clock.now)
        self.gate = SessionGate(
            remote,
            cache,
            clock=self.clock,
            bus=bus,
            idle_timeout=idle_timeout,
            last_activity=last_activity,
        )
        self.gate.on_change(self._on_session_change)
        self.sync: Optional[SyncLayer] = None
        self.current_week = week_key(now=self.clock.now())

    # ==================== Lifecycle ====================

    def open(self) -> SessionState:
        """Load the cache and resolve the session (hydrating if signed in)."""
        self.store.load()
        return self.gate.mount()

    def close(self) -> None:
        """Send pending pushes and tear everything down."""
        if self.sync is not None:
            self.sync.flush()
            self.sync.close()
            self.sync = None
        self.gate.unmount()

    def __enter__(self) -> "JournalApp":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_session_change(self, state: SessionState, user: Optional[Identity]) -> None:
        if user is not None:
            if self.sync is not None and self.sync.user_id == user.id:
                return
            if self.sync is not None:
                self.sync.close()
            self.sync = SyncLayer(self.remote, self.clock, user.id, delay=self.debounce)
            self.sync.hydrate(self.store)
            self.sync.attach(self.store)
        else:
            if self.sync is not None:
                self.sync.close()
                self.sync = None
            self.store.clear()

    @property
    def user(self) -> Optional[Identity]:
        return self.gate.user

    @property
    def signed_in(self) -> bool:
        return self.gate.state == SessionState.HAS_SESSION

    # ==================== Week Navigation ====================

    def set_week(self, value: DateLike) -> str:
        """Select the week containing value."""
        self.current_week = week_key(value, now=self.clock.now())
        return self.current_week

    def shift_week(self, weeks: int) -> str:
        """Move the selected week forward or back."""
        self.current_week = shift_week(self.current_week, weeks)
        return self.current_week

    @property
    def entry(self) -> JournalEntry:
        """Entry of the selected week."""
        return self.store.get(self.current_week)

    @property
    def custom_checks(self) -> list[CustomCheck]:
        return self.store.custom_checks

    def score(self, key: Optional[str] = None) -> int:
        """Checklist score of a week (default: the selected one)."""
        return checklist_score(self.store.get(key or self.current_week), self.store.custom_checks)

    # ==================== Editing ====================

    def set_context(self, text: str) -> JournalEntry:
        return self.store.update(self.current_week, context=text)

    def set_answer(self, check_id: str, value: bool) -> JournalEntry:
        """Set a fixed or custom checklist answer.

        Raises:
            ValueError: If the check ID is unknown.
        """
        changes = toggle_answer(self.entry, check_id, value, self.store.custom_checks)
        return self.store.update(self.current_week, **changes)

    def add_tag(self, tag: str) -> JournalEntry:
        tag = tag.strip()
        if not tag or tag in self.entry.tags:
            return self.entry
        return self.store.update(self.current_week, tags=[*self.entry.tags, tag])

    def remove_tag(self, tag: str) -> JournalEntry:
        if tag not in self.entry.tags:
            return self.entry
        return self.store.update(
            self.current_week, tags=[t for t in self.entry.tags if t != tag]
        )

    def add_custom_check(self, label: str) -> CustomCheck:
        return self.store.add_custom_check(label)

    def remove_custom_check(self, check_id: str) -> bool:
        return self.store.remove_custom_check(check_id)

    # ==================== Imports ====================

    def import_trades(self, path: Path) -> Notice:
        """Import a trade-log file into the selected week."""
        try:
            text = read_trade_log(path)
        except FormatError as e:
            return Notice(level="error", message=f"Import failed: {e}")
        return self.import_trades_text(text)

    def import_trades_text(self, text: str) -> Notice:
        """Import trade-log contents, replacing the week's trades and stats."""
        try:
            summary = summarize_week(parse_trade_log(text), self.current_week)
        except FormatError as e:
            return Notice(level="error", message=f"Import failed: {e}")

        self.store.update(
            self.current_week,
            trades=summary.trades,
            stats=WeekStats(number_of_trades=summary.number_of_trades, pnl=summary.pnl),
        )
        logger.info("Imported %d trades into %s", summary.number_of_trades, self.current_week)
        return Notice(
            level="success",
            message=(
                f"Imported {summary.number_of_trades} trades for this week. "
                f"PnL: {summary.pnl:.2f}"
            ),
        )

    def add_screenshots(self, paths: list[Path]) -> list[Notice]:
        """Attach image files to the selected week."""
        loaded, skipped = load_screenshots(paths)
        notices = [Notice(level="warning", message=message) for message in skipped]
        if loaded:
            self.store.update(
                self.current_week, screenshots=[*self.entry.screenshots, *loaded]
            )
            notices.append(Notice(level="success", message=f"Added {len(loaded)} screenshot(s)"))
        return notices

    def remove_screenshot(self, screenshot_id: str) -> bool:
        remaining = [s for s in self.entry.screenshots if s.id != screenshot_id]
        if len(remaining) == len(self.entry.screenshots):
            return False
        self.store.update(self.current_week, screenshots=remaining)
        return True

    # ==================== Backup ====================

    def export_backup(self, path: Optional[Path] = None) -> Path:
        """Write the whole journal to a JSON backup file."""
        now = self.clock.now()
        document = export_backup(self.store.entries, self.store.custom_checks, exported_at=now)
        return write_backup(path or Path(default_backup_name(now)), document)

    def import_backup(self, path: Path) -> Notice:
        """Replace the whole journal with a backup file's contents."""
        try:
            entries, checks = read_backup(path)
        except ValidationError as e:
            return Notice(level="error", message=str(e))
        self.store.replace_all(entries, checks)
        return Notice(
            level="success",
            message=f"Imported {len(entries)} weeks and {len(checks)} custom checks",
        )

    # ==================== History ====================

    def history(self) -> list[WeekSummary]:
        """Summaries of every stored week, newest first."""
        checks = self.store.custom_checks
        summaries = []
        for key in self.store.week_keys():
            try:
                start, end = parse_week_key(key)
            except ValueError:
                logger.warning("Skipping entry with malformed week key %s", key)
                continue
            entry = self.store.get(key)
            summaries.append(
                WeekSummary(
                    key=key,
                    start=start,
                    end=end,
                    number_of_trades=entry.stats.number_of_trades,
                    pnl=entry.stats.pnl,
                    score=checklist_score(entry, checks),
                    tags=entry.tags,
                    has_notes=bool(entry.context.strip()),
                )
            )
        return summaries
