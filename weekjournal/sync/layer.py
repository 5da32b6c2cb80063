"""Debounced mirroring of the journal to the remote store."""

import logging
from typing import Callable, Optional

from pydantic import ValidationError as ModelValidationError

from weekjournal.db.store import EntryStore, StoreEvent
from weekjournal.dates.weeks import format_date
from weekjournal.errors import NetworkError
from weekjournal.models import CustomCheck, JournalEntry
from weekjournal.remote.base import BaseRemote, WeekRow
from weekjournal.sync.clock import Clock
from weekjournal.sync.debounce import Debouncer

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.8


def rows_to_entries(rows: list[WeekRow]) -> dict[str, JournalEntry]:
    """Map remote week rows to entries keyed by WeekKey.

    Rows with an unreadable payload are skipped.
    """
    entries: dict[str, JournalEntry] = {}
    for row in rows:
        key = f"{format_date(row.week_start)}_{format_date(row.week_end)}"
        try:
            entries[key] = JournalEntry.model_validate(row.payload)
        except ModelValidationError as e:
            logger.warning("Skipping unreadable remote week %s: %s", key, e)
    return entries


class SyncLayer:
    """Pushes entry and checklist changes upstream for one signed-in user.

    Two independent debounced channels coalesce edits into at most one
    upsert per quiet period each. Failed writes are logged and dropped.
    """

    def __init__(
        self,
        remote: BaseRemote,
        clock: Clock,
        user_id: str,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """Initialize the sync layer.

        Args:
            remote: Remote store to write to.
            clock: Clock providing debounce timers.
            user_id: ID of the signed-in user.
            delay: Debounce quiet period in seconds.
        """
        self._remote = remote
        self.user_id = user_id
        self._entry_channel = Debouncer(clock, delay, self._push_entry)
        self._checks_channel = Debouncer(clock, delay, self._push_checks)
        self._store: Optional[EntryStore] = None
        self._detach: Optional[Callable[[], None]] = None
        self._hydrated = False
        self._closed = False

    @property
    def pending(self) -> bool:
        """Whether any push is waiting for its quiet period."""
        return self._entry_channel.pending or self._checks_channel.pending

    # ==================== Pull ====================

    def hydrate(self, store: EntryStore) -> bool:
        """Fetch the user's journal once and merge it into the store.

        Returns:
            True if remote data was merged, False on failure or repeat.
        """
        if self._hydrated or self._closed:
            return False
        self._hydrated = True

        try:
            checks = self._remote.fetch_settings(self.user_id)
            rows = self._remote.fetch_weeks(self.user_id)
        except (NetworkError, ModelValidationError) as e:
            logger.warning("Hydration failed, continuing with cached data: %s", e)
            return False

        if checks is not None:
            store.set_custom_checks(checks, notify=False)
        store.merge_remote(rows_to_entries(rows))
        logger.debug("Hydrated %d weeks for user %s", len(rows), self.user_id)
        return True

    # ==================== Push ====================

    def attach(self, store: EntryStore) -> None:
        """Push every subsequent change made to the store."""
        if self._detach is not None:
            self._detach()
        self._store = store
        self._detach = store.subscribe(self._on_store_event)

    def _on_store_event(self, event: StoreEvent) -> None:
        if self._store is None:
            return
        if event.kind == "entry" and event.key:
            self.schedule_entry(event.key, self._store.get(event.key))
        elif event.kind == "checks":
            self.schedule_checks(self._store.custom_checks)

    def schedule_entry(self, key: str, entry: JournalEntry) -> None:
        """Queue an upsert of one week.

        A push still waiting for a different week is sent at once instead
        of being cancelled, so switching weeks never drops an edit. Pending
        pushes are only cancelled by `close`, on sign-out or user change.
        """
        if self._closed:
            return
        pending = self._entry_channel.pending_args
        if pending is not None and pending[0] != key:
            self._entry_channel.flush()
        self._entry_channel.call(key, entry)

    def schedule_checks(self, checks: list[CustomCheck]) -> None:
        """Queue an upsert of the custom checklist."""
        if self._closed:
            return
        self._checks_channel.call(list(checks))

    def _push_entry(self, key: str, entry: JournalEntry) -> None:
        if self._closed:
            return
        try:
            self._remote.upsert_week(self.user_id, key, entry)
            logger.debug("Pushed week %s", key)
        except (NetworkError, ValueError) as e:
            logger.warning("Could not push week %s: %s", key, e)

    def _push_checks(self, checks: list[CustomCheck]) -> None:
        if self._closed:
            return
        try:
            self._remote.upsert_settings(self.user_id, checks)
            logger.debug("Pushed %d custom checks", len(checks))
        except NetworkError as e:
            logger.warning("Could not push custom checks: %s", e)

    def flush(self) -> None:
        """Send waiting pushes now."""
        self._entry_channel.flush()
        self._checks_channel.flush()

    def close(self) -> None:
        """Cancel waiting pushes and stop listening to the store."""
        self._entry_channel.cancel()
        self._checks_channel.cancel()
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._store = None
        self._closed = True
