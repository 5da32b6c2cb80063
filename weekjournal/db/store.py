"""In-memory journal store persisted to the local cache."""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel

from weekjournal.db.cache import KeyValueCache
from weekjournal.errors import ValidationError
from weekjournal.importers.backup import (
    checks_from_document,
    entries_from_document,
    entries_to_document,
)
from weekjournal.models import FIXED_CHECK_IDS, CustomCheck, JournalEntry

logger = logging.getLogger(__name__)

# Local cache key holding {entries, customChecks}.
CACHE_KEY = "trading_journal_v2"

_MANAGED_FIELDS = {"created_at", "updated_at"}
_EDITABLE_FIELDS = set(JournalEntry.model_fields) - _MANAGED_FIELDS


class StoreEvent(BaseModel):
    """Change notification emitted by EntryStore."""

    kind: Literal["entry", "checks"]
    key: Optional[str] = None

    model_config = {"frozen": True}


def checklist_score(
    entry: JournalEntry,
    custom_checks: list[CustomCheck],
    fixed: tuple[str, ...] = FIXED_CHECK_IDS,
) -> int:
    """Percentage of checklist items answered true, rounded half up.

    Only the fixed items and the currently configured custom checks count;
    answers left behind by deleted custom checks are ignored.
    """
    custom_ids = [check.id for check in custom_checks]
    total = len(fixed) + len(custom_ids)
    if total == 0:
        return 0

    checked = sum(1 for check_id in fixed if entry.answers.get(check_id))
    checked += sum(1 for check_id in custom_ids if entry.custom_answers.get(check_id))
    return int(math.floor(100 * checked / total + 0.5))


def toggle_answer(
    entry: JournalEntry,
    check_id: str,
    value: bool,
    custom_checks: list[CustomCheck],
) -> dict[str, Any]:
    """Build the update for setting one checklist answer.

    Returns:
        A full replacement of the nested mapping that owns ``check_id``,
        ready to pass to ``EntryStore.update``.

    Raises:
        ValueError: If the ID is neither a fixed nor a configured custom check.
    """
    if check_id in FIXED_CHECK_IDS:
        return {"answers": {**entry.answers, check_id: value}}
    if check_id in {check.id for check in custom_checks}:
        return {"custom_answers": {**entry.custom_answers, check_id: value}}
    raise ValueError(f"Unknown checklist item: {check_id}")


class EntryStore:
    """Week-keyed journal entries plus the global custom checklist.

    Every mutation is written through to the local cache and announced to
    subscribers (the sync layer listens to push changes upstream).
    """

    def __init__(
        self,
        cache: KeyValueCache,
        now: Callable[[], datetime] = datetime.now,
        cache_key: str = CACHE_KEY,
    ):
        """Initialize an empty store.

        Args:
            cache: Local cache used for persistence.
            now: Time source for entry timestamps.
            cache_key: Cache key of the journal document.
        """
        self._cache = cache
        self._now = now
        self._cache_key = cache_key
        self._entries: dict[str, JournalEntry] = {}
        self._custom_checks: list[CustomCheck] = []
        self._subscribers: list[Callable[[StoreEvent], None]] = []

    # ==================== Persistence ====================

    def load(self) -> None:
        """Read the cached journal document, if any."""
        document = self._cache.get(self._cache_key)
        if not isinstance(document, dict):
            return
        try:
            self._entries = entries_from_document(document.get("entries", {}))
            self._custom_checks = checks_from_document(document.get("customChecks", []))
        except ValidationError as e:
            logger.warning("Discarding corrupt journal cache: %s", e)
            self._entries = {}
            self._custom_checks = []

    def snapshot(self) -> dict[str, Any]:
        """Return the cache document for the current state."""
        return {
            "entries": entries_to_document(self._entries),
            "customChecks": [check.model_dump(mode="json") for check in self._custom_checks],
        }

    def _persist(self) -> None:
        self._cache.set(self._cache_key, self.snapshot())

    # ==================== Subscriptions ====================

    def subscribe(self, callback: Callable[[StoreEvent], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A function that removes the listener.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: StoreEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)

    # ==================== Entries ====================

    @property
    def entries(self) -> dict[str, JournalEntry]:
        """Copy of all entries keyed by WeekKey."""
        return dict(self._entries)

    def get(self, key: str) -> JournalEntry:
        """Return the entry for a week, or an empty default entry."""
        return self._entries.get(key) or JournalEntry()

    def update(self, key: str, **fields: Any) -> JournalEntry:
        """Shallow-merge fields into a week's entry.

        Nested mappings such as ``answers`` are replaced, not merged; build
        the replacement from the previous value.

        Raises:
            ValueError: If a field name is not editable.
        """
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown entry fields: {', '.join(sorted(unknown))}")

        current = self.get(key)
        now = self._now()
        data = dict(current)
        data.update(fields)
        data["created_at"] = current.created_at or now
        data["updated_at"] = now

        entry = JournalEntry.model_validate(data)
        self._entries[key] = entry
        self._persist()
        self._notify(StoreEvent(kind="entry", key=key))
        return entry

    def merge_remote(self, entries: dict[str, JournalEntry]) -> None:
        """Merge entries fetched from the remote; remote wins per key."""
        if not entries:
            return
        self._entries.update(entries)
        self._persist()

    def week_keys(self) -> list[str]:
        """WeekKeys of stored entries, newest first."""
        return sorted(self._entries, reverse=True)

    # ==================== Custom Checks ====================

    @property
    def custom_checks(self) -> list[CustomCheck]:
        """Copy of the custom checklist."""
        return list(self._custom_checks)

    def set_custom_checks(self, checks: list[CustomCheck], notify: bool = True) -> None:
        """Replace the custom checklist."""
        self._custom_checks = list(checks)
        self._persist()
        if notify:
            self._notify(StoreEvent(kind="checks"))

    def add_custom_check(self, label: str) -> CustomCheck:
        """Append a new custom check.

        Raises:
            ValueError: If the label is blank.
        """
        label = label.strip()
        if not label:
            raise ValueError("Checklist label cannot be empty")
        check = CustomCheck(id=f"c_{uuid.uuid4().hex[:8]}", label=label)
        self.set_custom_checks([*self._custom_checks, check])
        return check

    def remove_custom_check(self, check_id: str) -> bool:
        """Remove a custom check. Old answers for it stay in past entries."""
        remaining = [check for check in self._custom_checks if check.id != check_id]
        if len(remaining) == len(self._custom_checks):
            return False
        self.set_custom_checks(remaining)
        return True

    # ==================== Bulk ====================

    def replace_all(
        self, entries: dict[str, JournalEntry], custom_checks: list[CustomCheck]
    ) -> None:
        """Replace the whole journal (backup import)."""
        self._entries = dict(entries)
        self._custom_checks = list(custom_checks)
        self._persist()
        self._notify(StoreEvent(kind="checks"))
        for key in self.week_keys():
            self._notify(StoreEvent(kind="entry", key=key))

    def clear(self) -> None:
        """Drop in-memory state without touching the cache."""
        self._entries = {}
        self._custom_checks = []
