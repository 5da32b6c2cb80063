"""Tests for JSON backup export and import.

**Feature: weekly-journal**
"""

import json
import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from weekjournal.errors import ValidationError
from weekjournal.importers.backup import (
    BACKUP_VERSION,
    default_backup_name,
    export_backup,
    parse_backup,
    read_backup,
    write_backup,
)
from weekjournal.models import CustomCheck, JournalEntry, TradeRecord, WeekStats
from weekjournal.dates import week_key

week_keys = st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 12, 31)).map(week_key)

entries_strategy = st.builds(
    JournalEntry,
    context=st.text(max_size=100),
    tags=st.lists(st.text(min_size=1, max_size=8), max_size=4),
    stats=st.builds(
        WeekStats,
        number_of_trades=st.integers(min_value=0, max_value=500),
        pnl=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
    ),
    custom_answers=st.dictionaries(st.text(min_size=1, max_size=6), st.booleans(), max_size=3),
)

checks_strategy = st.lists(
    st.builds(
        CustomCheck,
        id=st.text(min_size=1, max_size=10),
        label=st.text(max_size=30),
    ),
    max_size=5,
)


class TestBackupRoundTrip:
    """
    **Feature: weekly-journal, Property 9: Backup Round Trip**

    *For any* journal, importing an exported backup restores the same
    entries and custom checks.
    """

    @given(
        entries=st.dictionaries(week_keys, entries_strategy, max_size=5),
        checks=checks_strategy,
    )
    @settings(max_examples=50)
    def test_round_trip(self, entries, checks):
        document = json.loads(json.dumps(export_backup(entries, checks)))

        restored_entries, restored_checks = parse_backup(document)

        assert restored_entries == entries
        assert restored_checks == checks

    def test_document_shape(self):
        entry = JournalEntry(
            context="notes",
            trades=[TradeRecord(time=datetime(2024, 3, 5, 10), symbol="EURUSD", profit=1.5)],
        )
        document = export_backup(
            {"2024-03-04_2024-03-10": entry},
            [CustomCheck(id="c_1", label="A")],
            exported_at=datetime(2024, 3, 10, 12, 0),
        )

        assert document["version"] == BACKUP_VERSION
        assert document["exportedAt"] == "2024-03-10T12:00:00"
        assert document["customChecks"] == [{"id": "c_1", "label": "A"}]
        week = document["entries"]["2024-03-04_2024-03-10"]
        assert week["customAnswers"] == {}
        assert week["trades"][0]["time"] == "2024-03-05T10:00:00"

    def test_extra_keys_tolerated(self):
        entries, checks = parse_backup({"entries": {}, "customChecks": [], "foo": 1})

        assert entries == {}
        assert checks == []


class TestBackupValidation:
    """Malformed backup documents are rejected."""

    @pytest.mark.parametrize(
        "document",
        [
            {"entries": {}},
            {"customChecks": []},
            [],
            "text",
            None,
        ],
    )
    def test_missing_required_keys(self, document):
        with pytest.raises(ValidationError, match="expected 'entries' and 'customChecks'"):
            parse_backup(document)

    def test_entries_not_object(self):
        with pytest.raises(ValidationError):
            parse_backup({"entries": [], "customChecks": []})

    def test_bad_entry(self):
        with pytest.raises(ValidationError):
            parse_backup({"entries": {"k": {"tags": "oops"}}, "customChecks": []})

    def test_bad_check(self):
        with pytest.raises(ValidationError):
            parse_backup({"entries": {}, "customChecks": [{"label": "no id"}]})


class TestBackupFiles:
    """Reading and writing backup files."""

    def test_write_then_read(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "backup.json"
            entry = JournalEntry(context="saved")
            write_backup(path, export_backup({"2024-03-04_2024-03-10": entry}, []))

            entries, checks = read_backup(path)

            assert entries["2024-03-04_2024-03-10"].context == "saved"
            assert checks == []

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "backup.json"
            path.write_text("{oops")

            with pytest.raises(ValidationError, match="not valid JSON"):
                read_backup(path)

    def test_missing_file(self):
        with pytest.raises(ValidationError):
            read_backup(Path("/nonexistent/backup.json"))

    def test_default_name(self):
        assert default_backup_name(datetime(2024, 3, 10)) == "trading-journal-2024-03-10.json"
