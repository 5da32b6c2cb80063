"""JSON backup export and import."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as ModelValidationError

from weekjournal.errors import ValidationError
from weekjournal.models import CustomCheck, JournalEntry

BACKUP_VERSION = 2
REQUIRED_KEYS = ("entries", "customChecks")


def entries_to_document(entries: dict[str, JournalEntry]) -> dict[str, Any]:
    """Serialize entries to their camelCase JSON form keyed by WeekKey."""
    return {key: entry.to_document() for key, entry in entries.items()}


def entries_from_document(document: Any) -> dict[str, JournalEntry]:
    """Rebuild entries from their JSON form.

    Raises:
        ValidationError: If the mapping or any entry is malformed.
    """
    if not isinstance(document, dict):
        raise ValidationError("'entries' must be an object keyed by week")
    try:
        return {
            str(key): JournalEntry.model_validate(value)
            for key, value in document.items()
        }
    except ModelValidationError as e:
        raise ValidationError(f"Invalid journal entry: {e.errors()[0]['msg']}") from e


def checks_from_document(document: Any) -> list[CustomCheck]:
    """Rebuild the custom checklist from its JSON form.

    Raises:
        ValidationError: If the list or any item is malformed.
    """
    if not isinstance(document, list):
        raise ValidationError("'customChecks' must be a list")
    try:
        return [CustomCheck.model_validate(item) for item in document]
    except ModelValidationError as e:
        raise ValidationError(f"Invalid custom check: {e.errors()[0]['msg']}") from e


def export_backup(
    entries: dict[str, JournalEntry],
    custom_checks: list[CustomCheck],
    exported_at: Optional[datetime] = None,
) -> dict[str, Any]:
    """Build the backup document for the whole journal."""
    return {
        "entries": entries_to_document(entries),
        "customChecks": [check.model_dump(mode="json") for check in custom_checks],
        "exportedAt": (exported_at or datetime.now()).isoformat(),
        "version": BACKUP_VERSION,
    }


def parse_backup(document: Any) -> tuple[dict[str, JournalEntry], list[CustomCheck]]:
    """Validate a backup document and return its entries and checklist.

    Raises:
        ValidationError: If required keys are missing or content is malformed.
    """
    if not isinstance(document, dict) or any(k not in document for k in REQUIRED_KEYS):
        raise ValidationError(
            "Invalid backup file: expected 'entries' and 'customChecks'"
        )
    return (
        entries_from_document(document["entries"]),
        checks_from_document(document["customChecks"]),
    )


def write_backup(path: Path, document: dict[str, Any]) -> Path:
    """Write a backup document as pretty-printed JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2))
    return path


def read_backup(path: Path) -> tuple[dict[str, JournalEntry], list[CustomCheck]]:
    """Load and validate a backup file.

    Raises:
        ValidationError: If the file is unreadable, not JSON or malformed.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(f"Could not read backup {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"Backup is not valid JSON: {e.msg}") from e
    return parse_backup(document)


def default_backup_name(now: Optional[datetime] = None) -> str:
    """File name used when exporting without an explicit path."""
    return f"trading-journal-{(now or datetime.now()).strftime('%Y-%m-%d')}.json"
